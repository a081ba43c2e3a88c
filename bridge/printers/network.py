import socket
import logging
from typing import Any, Dict, List

from bridge.errors import PrintDispatchError
from bridge.models import PrinterDescriptor
from bridge.printers.base import Dispatcher

logger = logging.getLogger("print_bridge.network")

RAW_PORT = 9100


class NetworkDispatcher(Dispatcher):
    """Printers reachable on raw TCP (JetDirect / port 9100), from PRINTERS_JSON."""

    def __init__(self, printers: List[Dict[str, Any]], timeout: float = 10):
        self.timeout = timeout
        self._printers: Dict[str, Dict[str, Any]] = {}
        for p in printers:
            name = p.get("name")
            if not name or not p.get("host"):
                logger.warning("Ignoring network printer without name/host: %s", p)
                continue
            self._printers[name] = p

    def __contains__(self, name: str) -> bool:
        return name in self._printers

    def list_printers(self) -> List[PrinterDescriptor]:
        return [PrinterDescriptor(name=n, type="network") for n in self._printers]

    def send(self, printer: str, data: bytes) -> None:
        p = self._printers.get(printer)
        if p is None:
            raise PrintDispatchError(f"Network printer '{printer}' not configured")
        host, port = p["host"], int(p.get("port", RAW_PORT))
        try:
            with socket.create_connection((host, port), timeout=self.timeout) as s:
                s.sendall(data)
        except OSError as e:
            raise PrintDispatchError(f"Network send error to {host}:{port} -> {e}")
