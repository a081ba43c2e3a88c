"""
PrintService: the bridge operations independent of transport.

The HTTP API and the in-process desktop bridge both call into this class.
"""
import base64
import binascii
import logging
import platform
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import List, Optional

from bridge import __version__, env, escpos
from bridge.errors import PrintDispatchError, ValidationError
from bridge.models import PrintJobIn, PrinterConfig, PrinterDescriptor, Receipt
from bridge.printers import Dispatcher, validate_printer_name

logger = logging.getLogger("print_bridge.service")


def decode_base64(data: Optional[str], max_bytes: int) -> bytes:
    if not data or not isinstance(data, str):
        raise ValidationError("Raw data required (base64)")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid base64 data")
    if len(raw) > max_bytes:
        raise ValidationError("Payload too large")
    return raw


class PrintService:

    def __init__(
        self,
        dispatcher: Dispatcher,
        dispatch_timeout: float = env.DISPATCH_TIMEOUT,
        logo_max_width: int = env.LOGO_MAX_WIDTH,
        encoding: str = env.TEXT_ENCODING,
        max_raw_bytes: int = env.MAX_RAW_BYTES,
        image_fetch_timeout: float = env.IMAGE_FETCH_TIMEOUT,
    ):
        self.dispatcher = dispatcher
        self.dispatch_timeout = dispatch_timeout
        self.logo_max_width = logo_max_width
        self.encoding = encoding
        self.max_raw_bytes = max_raw_bytes
        self.image_fetch_timeout = image_fetch_timeout
        self._config = PrinterConfig()
        self._config_lock = threading.Lock()

    # -- enumeration / status --

    def list_printers(self) -> List[PrinterDescriptor]:
        return self.dispatcher.list_printers()

    def status(self) -> dict:
        return {
            "status": "connected",
            "version": __version__,
            "platform": platform.system().lower(),
            "printerCount": len(self.list_printers()),
            "imageSupport": True,
            "printer": self.config.to_wire(),
        }

    @property
    def config(self) -> PrinterConfig:
        with self._config_lock:
            return self._config.model_copy()

    def update_config(self, config: PrinterConfig) -> PrinterConfig:
        name = config.printer_name
        if name:
            validate_printer_name(name)
            if name not in {p.name for p in self.list_printers()}:
                raise ValidationError("Invalid printer name. Please select from detected printers.")
        with self._config_lock:
            self._config = PrinterConfig(printer_name=name or None)
            return self._config.model_copy()

    # -- building --

    def build_receipt(self, receipt: Receipt) -> bytes:
        return escpos.build_receipt(
            receipt,
            logo_max_width=self.logo_max_width,
            encoding=self.encoding,
            fetch_timeout=self.image_fetch_timeout,
        )

    def build_job(self, job: PrintJobIn) -> bytes:
        payloads = [p for p in (job.raw, job.receipt, job.text) if p is not None]
        if not payloads:
            raise ValidationError("No print data provided")
        if len(payloads) > 1:
            raise ValidationError("Provide only one of raw, receipt or text")
        if job.raw is not None:
            return decode_base64(job.raw, self.max_raw_bytes)
        if job.receipt is not None:
            return self.build_receipt(job.receipt)
        return escpos.build_text(job.text, encoding=self.encoding)

    # -- dispatch --

    def _start_send(self, printer: str, data: bytes) -> Future:
        # one daemon thread per job; a hung send only ties up its own thread
        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                self.dispatcher.send(printer, data)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(None)

        threading.Thread(target=run, name=f"dispatch-{printer}", daemon=True).start()
        return future

    def dispatch(self, printer: Optional[str], data: bytes) -> None:
        printer = validate_printer_name(printer)
        logger.info("Sending %d bytes to %s", len(data), printer)
        future = self._start_send(printer, data)
        try:
            future.result(timeout=self.dispatch_timeout)
        except FutureTimeout:
            logger.error("Printer %s did not accept the job within %ss", printer, self.dispatch_timeout)
            raise PrintDispatchError(
                f"Printer did not accept the job within {self.dispatch_timeout:g}s"
            )

    def print_job(self, job: PrintJobIn) -> None:
        printer = validate_printer_name(job.printer)
        self.dispatch(printer, self.build_job(job))

    def print_receipt(self, printer: Optional[str], receipt: Receipt) -> None:
        printer = validate_printer_name(printer)
        self.dispatch(printer, self.build_receipt(receipt))

    def print_raw(self, printer: Optional[str], data_b64: Optional[str]) -> None:
        printer = validate_printer_name(printer)
        self.dispatch(printer, decode_base64(data_b64, self.max_raw_bytes))

    def open_drawer(self, printer: Optional[str]) -> None:
        self.dispatch(printer, escpos.drawer_kick())

    def test_print(self, printer: Optional[str]) -> None:
        self.print_receipt(printer, escpos.sample_receipt())
