"""Tests for the cluster entrypoint and resource-manager strategy."""

import pytest

from appboot.config import Configuration
from appboot.entrypoint import (
    ApplicationClusterEntrypoint,
    ResourceManagerFactory,
    YarnResourceManagerFactory,
)
from appboot.program import PackagedProgram


class TestYarnResourceManagerFactory:
    def test_singleton(self):
        assert YarnResourceManagerFactory.get_instance() is YarnResourceManagerFactory.get_instance()

    def test_default_port_range(self):
        factory = YarnResourceManagerFactory.get_instance()
        assert factory.get_rpc_port_range(Configuration()) == "0"

    @pytest.mark.parametrize("value", ["50100-50200", "6123", "50100,50105-50110"])
    def test_port_range_is_returned_unaltered(self, value):
        cfg = Configuration({"yarn.application-master.port": value})
        assert YarnResourceManagerFactory.get_instance().get_rpc_port_range(cfg) == value

    def test_is_abstract_base(self):
        with pytest.raises(TypeError):
            ResourceManagerFactory()


class TestApplicationClusterEntrypoint:
    @pytest.fixture
    def entrypoint(self):
        cfg = Configuration({"yarn.application-master.port": "50100-50200"})
        return ApplicationClusterEntrypoint(
            cfg,
            PackagedProgram("org.example.Main"),
            YarnResourceManagerFactory.get_instance(),
        )

    def test_rpc_port_range_delegates_to_factory(self, entrypoint):
        assert entrypoint.get_rpc_port_range() == "50100-50200"

    def test_rpc_port_range_for_other_configuration(self, entrypoint):
        other = Configuration({"yarn.application-master.port": "7000"})
        assert entrypoint.get_rpc_port_range(other) == "7000"

    def test_name(self, entrypoint):
        assert entrypoint.name == "YarnApplicationClusterEntrypoint"

    def test_custom_strategy(self):
        class FixedPortFactory(ResourceManagerFactory):
            scheduler = "standalone"

            def get_rpc_port_range(self, configuration):
                return "6123"

        entrypoint = ApplicationClusterEntrypoint(
            Configuration(), PackagedProgram("org.example.Main"), FixedPortFactory()
        )
        assert entrypoint.get_rpc_port_range() == "6123"
        assert entrypoint.name == "StandaloneApplicationClusterEntrypoint"
