import platform
import logging
from typing import List, Optional

from bridge import env
from bridge.models import PrinterDescriptor
from bridge.printers.base import Dispatcher, validate_printer_name
from bridge.printers.network import NetworkDispatcher

logger = logging.getLogger("print_bridge.printers")

OS = platform.system()


class RoutingDispatcher(Dispatcher):
    """OS printers plus configured network printers; routes by name."""

    def __init__(self, system: Optional[Dispatcher], network: NetworkDispatcher):
        self.system = system
        self.network = network

    def list_printers(self) -> List[PrinterDescriptor]:
        printers = self.system.list_printers() if self.system else []
        seen = {p.name for p in printers}
        return printers + [p for p in self.network.list_printers() if p.name not in seen]

    def send(self, printer: str, data: bytes) -> None:
        if printer in self.network or self.system is None:
            return self.network.send(printer, data)
        return self.system.send(printer, data)


def system_dispatcher(os_name: str = OS) -> Optional[Dispatcher]:
    if os_name == "Windows":
        from bridge.printers.windows import WindowsDispatcher
        return WindowsDispatcher()
    if os_name in ("Linux", "Darwin"):
        from bridge.printers.cups import CupsDispatcher
        return CupsDispatcher(send_timeout=env.DISPATCH_TIMEOUT)
    logger.warning("Unsupported OS %s: only network printers are available", os_name)
    return None


def get_dispatcher() -> Dispatcher:
    return RoutingDispatcher(system_dispatcher(), NetworkDispatcher(env.PRINTERS_JSON))


__all__ = ["Dispatcher", "RoutingDispatcher", "get_dispatcher", "validate_printer_name"]
