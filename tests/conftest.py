import re
import sys
import threading
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from bridge import env  # noqa: E402
from bridge.api import app, get_service  # noqa: E402
from bridge.errors import PrintDispatchError  # noqa: E402
from bridge.models import PrinterDescriptor  # noqa: E402
from bridge.printers import Dispatcher  # noqa: E402
from bridge.service import PrintService  # noqa: E402

_CONTROL = re.compile(rb"\x1b[a!].|\x1b@|\x1dV.|\x1bp...", re.DOTALL)


def visible_lines(data: bytes):
    """Text lines of an ESC/POS buffer with the control sequences removed."""
    text = _CONTROL.sub(b"", data).decode("utf-8")
    return [line for line in text.split("\n") if line.strip()]


class FakeDispatcher(Dispatcher):

    def __init__(self, printers=("EPSON_TM_T20", "Star_TSP100"), default="EPSON_TM_T20"):
        self.printers = list(printers)
        self.default = default
        self.sent = []
        self.fail_with = None
        self._lock = threading.Lock()

    def list_printers(self):
        return [PrinterDescriptor(name=n, is_default=(n == self.default)) for n in self.printers]

    def send(self, printer, data):
        if self.fail_with:
            raise PrintDispatchError(self.fail_with)
        if printer not in self.printers:
            raise PrintDispatchError(f"lp: The printer or class '{printer}' does not exist.")
        with self._lock:
            self.sent.append((printer, data))


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def service(dispatcher):
    return PrintService(dispatcher, dispatch_timeout=5)


@pytest.fixture
def client(service, monkeypatch):
    monkeypatch.setattr(env, "PRINT_BRIDGE_TOKEN", "")
    app.dependency_overrides[get_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
