"""Tests for the audit trail."""
import json
import logging

import pytest
from fastapi.testclient import TestClient

from wan_switch.routing_engine import (
    AddressSpec,
    Bootstrapper,
    OutOfSubnet,
    UnknownInterface,
)
from wan_switch.server import create_app
from wan_switch.utils.audit_log import (
    ChangeRecord,
    ChangeTracker,
    audit_logger,
    setup_audit_logging,
)


@pytest.fixture
def audit_file(tmp_path):
    path = setup_audit_logging(str(tmp_path))
    yield path
    for handler in list(audit_logger.handlers):
        handler.close()
        audit_logger.removeHandler(handler)
    audit_logger.propagate = True
    audit_logger.setLevel(logging.NOTSET)


class TestChangeTracker:
    """Audit records."""

    def test_record_round_trip(self):
        record = ChangeTracker().log_change(
            operation="switch",
            parameters={"ip": "10.40.0.3/32", "nic": "wan1"},
            success=True,
            directives=["add_rule from 10.40.0.3/32 table 200 priority 1000"],
        )

        assert ChangeRecord.from_json(record.to_json()) == record

    def test_written_as_json_lines(self, audit_file):
        tracker = ChangeTracker()
        tracker.log_change("switch", {"ip": "10.40.0.3/32", "nic": "wan1"}, success=True)
        tracker.log_change("switch", {"ip": "10.40.0.4/32", "nic": "wan9"}, success=False,
                           error="unknown")
        for handler in audit_logger.handlers:
            handler.flush()

        lines = audit_file.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["error"] == "unknown"

    @pytest.mark.asyncio
    async def test_engine_writes_switch_record(self, audit_file, engine):
        await engine.apply(AddressSpec.parse("10.40.0.3"), "wan1")
        for handler in audit_logger.handlers:
            handler.flush()

        record = json.loads(audit_file.read_text().splitlines()[-1])
        assert record["operation"] == "switch"
        assert record["success"] is True
        assert record["after_state"]["applied_to"] == "eth1"


def last_record(audit_file) -> dict:
    for handler in audit_logger.handlers:
        handler.flush()
    return json.loads(audit_file.read_text().splitlines()[-1])


class TestRejectedSwitches:
    """Switch attempts refused before any command runs are audited too."""

    @pytest.mark.asyncio
    async def test_out_of_subnet(self, audit_file, engine, port):
        with pytest.raises(OutOfSubnet):
            await engine.apply(AddressSpec.parse("192.168.1.1"), "wan1")

        record = last_record(audit_file)
        assert record["success"] is False
        assert record["parameters"] == {"ip": "192.168.1.1/32", "nic": "wan1"}
        assert "10.40.0.0/20" in record["error"]
        assert port.directives == []

    @pytest.mark.asyncio
    async def test_unknown_wan(self, audit_file, engine):
        with pytest.raises(UnknownInterface):
            await engine.apply(AddressSpec.parse("10.40.0.3"), "wan9")

        record = last_record(audit_file)
        assert record["success"] is False
        assert record["parameters"]["nic"] == "wan9"

    def test_invalid_address_over_http(self, audit_file, config, port):
        app = create_app(config, port=port, bootstrapper=Bootstrapper(config, port, retry_wait=0))
        with TestClient(app) as client:
            client.get("/switch", params={"ip": "10.40.0.300", "nic": "wan1"})

        record = last_record(audit_file)
        assert record["operation"] == "switch"
        assert record["success"] is False
        assert record["parameters"] == {"ip": "10.40.0.300", "nic": "wan1"}

    def test_missing_parameter_over_http(self, audit_file, config, port):
        app = create_app(config, port=port, bootstrapper=Bootstrapper(config, port, retry_wait=0))
        with TestClient(app) as client:
            client.get("/switch", params={"ip": "10.40.0.3"})

        record = last_record(audit_file)
        assert record["success"] is False
        assert record["parameters"] == {"ip": "10.40.0.3", "nic": None}
        assert "'nic'" in record["error"]
