"""Tests for configuration loading."""
import pytest

from wan_switch.config import ConfigError, LAN_SUBNET, load_config


class TestDefaults:
    """No file, empty environment."""

    def test_default_bindings(self):
        config = load_config(environ={})

        assert config.interface_map() == {"wan0": "eth0", "wan1": "eth1", "lan": "eth2"}
        assert [wan.table for wan in config.wans] == [100, 200]
        assert config.primary_wan.name == "wan0"
        assert config.lan_subnet == LAN_SUBNET

    def test_default_listen(self):
        config = load_config(environ={})

        assert config.host == "127.0.0.1"
        assert config.port == 32599
        assert config.command_timeout == 10.0

    def test_get_wan_unknown(self):
        with pytest.raises(KeyError):
            load_config(environ={}).get_wan("wan7")


class TestEnvironment:
    """Environment overrides."""

    def test_interface_overrides(self):
        config = load_config(environ={"WAN0": "enp1s0", "WAN1": "ppp0", "LAN": "br0"})

        assert config.interface_map() == {"wan0": "enp1s0", "wan1": "ppp0", "lan": "br0"}

    def test_extra_wan_slot(self):
        config = load_config(environ={"WAN2": "wwan0"})

        assert config.wan_names == ["wan0", "wan1", "wan2"]
        assert config.get_wan("wan2").table == 300

    def test_empty_value_ignored(self):
        config = load_config(environ={"WAN1": ""})

        assert config.get_wan("wan1").interface == "eth1"

    def test_invalid_port(self):
        with pytest.raises(ConfigError):
            load_config(environ={"WAN_SWITCH_PORT": "not-a-port"})

    def test_out_of_range_port(self):
        with pytest.raises(ConfigError):
            load_config(environ={"WAN_SWITCH_PORT": "70000"})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigError):
            load_config(environ={"WAN_SWITCH_COMMAND_TIMEOUT": "-1"})


class TestYamlFile:
    """YAML configuration file."""

    def test_file_values(self, tmp_path):
        path = tmp_path / "wan-switch.yaml"
        path.write_text(
            "wans:\n"
            "  wan1:\n"
            "    interface: eth5\n"
            "    gateway: 198.51.100.1\n"
            "  wan2: ppp0\n"
            "lan: br-lan\n"
            "listen:\n"
            "  port: 8080\n"
        )

        config = load_config(str(path), environ={})

        assert config.get_wan("wan1").interface == "eth5"
        assert config.get_wan("wan1").gateway == "198.51.100.1"
        assert config.get_wan("wan2").interface == "ppp0"
        assert config.lan == "br-lan"
        assert config.port == 8080

    def test_environment_beats_file(self, tmp_path):
        path = tmp_path / "wan-switch.yaml"
        path.write_text("wans:\n  wan1:\n    interface: eth5\n    gateway: 198.51.100.1\n")

        config = load_config(str(path), environ={"WAN1": "eth9"})

        assert config.get_wan("wan1").interface == "eth9"
        assert config.get_wan("wan1").gateway == "198.51.100.1"

    def test_path_from_environment(self, tmp_path):
        path = tmp_path / "wan-switch.yaml"
        path.write_text("lan: br0\n")

        config = load_config(environ={"WAN_SWITCH_CONFIG": str(path)})

        assert config.lan == "br0"

    def test_bad_wan_name(self, tmp_path):
        path = tmp_path / "wan-switch.yaml"
        path.write_text("wans:\n  uplink: eth0\n")

        with pytest.raises(ConfigError):
            load_config(str(path), environ={})

    def test_wan_missing_interface(self, tmp_path):
        path = tmp_path / "wan-switch.yaml"
        path.write_text("wans:\n  wan1:\n    gateway: 198.51.100.1\n")

        with pytest.raises(ConfigError):
            load_config(str(path), environ={})

    def test_top_level_not_mapping(self, tmp_path):
        path = tmp_path / "wan-switch.yaml"
        path.write_text("- eth0\n- eth1\n")

        with pytest.raises(ConfigError):
            load_config(str(path), environ={})


class TestMalformedFile:
    """Broken files surface as ConfigError."""

    @pytest.mark.parametrize("content", [
        "wans: [eth0\n",
        "lan: \"eth2\n",
    ])
    def test_yaml_syntax_error(self, tmp_path, content):
        path = tmp_path / "wan-switch.yaml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            load_config(str(path), environ={})

    @pytest.mark.parametrize("content", [
        "wans:\n  - eth0\n  - eth1\n",
        "listen: 127.0.0.1\n",
    ])
    def test_section_not_mapping(self, tmp_path, content):
        path = tmp_path / "wan-switch.yaml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            load_config(str(path), environ={})

    @pytest.mark.parametrize("content", [
        "command_timeout: 0\n",
        "listen:\n  port: 0\n",
    ])
    def test_zero_is_not_replaced_by_default(self, tmp_path, content):
        path = tmp_path / "wan-switch.yaml"
        path.write_text(content)

        with pytest.raises(ConfigError):
            load_config(str(path), environ={})

    def test_zero_timeout_from_environment(self):
        with pytest.raises(ConfigError):
            load_config(environ={"WAN_SWITCH_COMMAND_TIMEOUT": "0"})

    def test_gateway_coerced_to_string(self, tmp_path):
        path = tmp_path / "wan-switch.yaml"
        path.write_text("wans:\n  wan1:\n    interface: eth1\n    gateway: 3232235777\n")

        config = load_config(str(path), environ={})

        assert config.get_wan("wan1").gateway == "3232235777"
