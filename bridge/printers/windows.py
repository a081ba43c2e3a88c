import logging
from typing import List

from bridge.errors import PrintDispatchError
from bridge.models import PrinterDescriptor
from bridge.printers.base import Dispatcher

logger = logging.getLogger("print_bridge.windows")


class WindowsDispatcher(Dispatcher):
    """Windows spooler through pywin32, RAW datatype so control bytes pass untouched."""

    doc_name = "POS Receipt"

    def list_printers(self) -> List[PrinterDescriptor]:
        import win32print
        try:
            flags = win32print.PRINTER_ENUM_LOCAL | win32print.PRINTER_ENUM_CONNECTIONS
            printers = win32print.EnumPrinters(flags)
        except Exception as e:
            logger.warning("EnumPrinters failed: %s", e)
            return []
        try:
            default = win32print.GetDefaultPrinter()
        except Exception:
            # no default printer configured
            default = None
        # EnumPrinters returns tuples; the name is at index 2
        return [PrinterDescriptor(name=p[2], is_default=(p[2] == default)) for p in printers if p[2]]

    def send(self, printer: str, data: bytes) -> None:
        import pywintypes
        import win32print
        try:
            h = win32print.OpenPrinter(printer)
        except pywintypes.error as e:
            raise PrintDispatchError(f"Cannot open printer '{printer}': {e.strerror}")
        try:
            win32print.StartDocPrinter(h, 1, (self.doc_name, None, "RAW"))
            try:
                win32print.StartPagePrinter(h)
                win32print.WritePrinter(h, data)
                win32print.EndPagePrinter(h)
            finally:
                win32print.EndDocPrinter(h)
        except pywintypes.error as e:
            raise PrintDispatchError(f"Spooler rejected job for '{printer}': {e.strerror}")
        finally:
            win32print.ClosePrinter(h)
