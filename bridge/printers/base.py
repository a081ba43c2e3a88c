import re
from abc import ABC, abstractmethod
from typing import List

from bridge.errors import ValidationError
from bridge.models import PrinterDescriptor

_UNSAFE_NAME = re.compile(r"[<>|&;`$\\\x00-\x1f]")


def validate_printer_name(name) -> str:
    if not name or not isinstance(name, str) or not name.strip():
        raise ValidationError("Printer name required")
    if len(name) > 255 or _UNSAFE_NAME.search(name):
        raise ValidationError("Invalid printer name")
    return name


class Dispatcher(ABC):

    @abstractmethod
    def list_printers(self) -> List[PrinterDescriptor]:
        """Printers known to the host. Never raises; an empty list on failure."""

    @abstractmethod
    def send(self, printer: str, data: bytes) -> None:
        """Deliver `data` verbatim. Raises PrintDispatchError."""
