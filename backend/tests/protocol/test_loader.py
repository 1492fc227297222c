"""Protocol connector loading tests."""

import pytest

from botfleet.protocol.base import ProtocolConnector
from botfleet.protocol.loader import UnavailableConnector, load_connector
from botfleet.supervisor.models import Credentials, Endpoint
from botfleet.utils.errors import ErrorCode, TransportError


class DummyConnector:
    async def connect(self, endpoint, credentials, on_event):
        raise NotImplementedError


def make_dummy():
    return DummyConnector()


def make_nothing():
    return object()


class TestLoadConnector:

    def test_unset_path_gives_unavailable(self):
        assert isinstance(load_connector(None), UnavailableConnector)
        assert isinstance(load_connector(""), UnavailableConnector)

    def test_loads_factory(self):
        connector = load_connector(f"{__name__}:make_dummy")

        assert isinstance(connector, DummyConnector)
        assert isinstance(connector, ProtocolConnector)

    @pytest.mark.parametrize("path", ["no_colon", ":make_dummy", f"{__name__}:"])
    def test_malformed_path(self, path):
        with pytest.raises(ValueError, match="module:factory"):
            load_connector(path)

    def test_missing_module(self):
        with pytest.raises(ValueError, match="Cannot load"):
            load_connector("botfleet.does_not_exist:factory")

    def test_missing_attribute(self):
        with pytest.raises(ValueError, match="Cannot load"):
            load_connector(f"{__name__}:no_such_factory")

    def test_factory_must_return_connector(self):
        with pytest.raises(ValueError, match="did not return"):
            load_connector(f"{__name__}:make_nothing")


class TestUnavailableConnector:

    @pytest.mark.asyncio
    async def test_dial_fails_with_transport_error(self):
        connector = UnavailableConnector()

        with pytest.raises(TransportError) as exc_info:
            await connector.connect(
                Endpoint(host="mc.example.net"),
                Credentials(username="Steve"),
                lambda event: None,
            )

        assert exc_info.value.code == ErrorCode.TRANSPORT_ERROR.value
        assert exc_info.value.details == {"endpoint": "mc.example.net:25565"}
