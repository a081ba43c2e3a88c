"""
Client facade for the print bridge.

Callers (the POS front end, the operator panel, a desktop shell) ask this
object whether the bridge is there and hand it receipts. Every method returns
a value; a missing or failing bridge is reported as
``PrintResult(success=False, error=...)`` so the caller can fall back to
browser printing. Nothing raises across this boundary.
"""
import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import requests
from pydantic import ValidationError as ModelError

from bridge import __version__, env, escpos
from bridge.errors import BridgeError
from bridge.models import BridgeStatus, PrintResult, PrinterConfig, PrinterDescriptor, Receipt

logger = logging.getLogger("print_bridge.client")

BRIDGE_UNAVAILABLE = "Print bridge not available"
STATUS_TIMEOUT = 2.0
STATUS_CACHE_TTL = 5.0

ReceiptLike = Union[Receipt, Dict[str, Any]]


@dataclass
class StatusCache:
    value: Optional[BridgeStatus] = None
    expires_at: float = 0.0

    def get(self, now: float) -> Optional[BridgeStatus]:
        if self.value is not None and now < self.expires_at:
            return self.value
        return None


def _receipt_wire(receipt: ReceiptLike) -> Dict[str, Any]:
    if isinstance(receipt, Receipt):
        return receipt.to_wire()
    return Receipt.model_validate(receipt).to_wire()


class PrintBridgeClient:

    def __init__(
        self,
        base_url: str = env.PRINT_BRIDGE_URL,
        token: Optional[str] = env.PRINT_BRIDGE_TOKEN,
        timeout: float = STATUS_TIMEOUT,
        cache_ttl: float = STATUS_CACHE_TTL,
        print_timeout: float = env.DISPATCH_TIMEOUT + 5,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.print_timeout = print_timeout
        self.session = session or requests.Session()
        self.clock = clock
        self.printer_name: Optional[str] = None
        self._cache = StatusCache()

    def _headers(self) -> Dict[str, str]:
        h = {"Content-Type": "application/json"}
        if self.token:
            h["X-Agent-Token"] = self.token
        return h

    # -- status --

    def check_status(self) -> BridgeStatus:
        now = self.clock()
        cached = self._cache.get(now)
        if cached is not None:
            return cached

        status = BridgeStatus(is_available=False)
        try:
            r = self.session.get(f"{self.base_url}/status", headers=self._headers(), timeout=self.timeout)
            data = r.json() if r.status_code == 200 else None
            if isinstance(data, dict):
                status = BridgeStatus(
                    is_available=True,
                    version=data.get("version"),
                    printer_config=PrinterConfig.model_validate(data.get("printer") or {}),
                )
        except (requests.RequestException, ValueError, ModelError) as e:
            logger.debug("Bridge probe failed: %s", e)

        self._cache = StatusCache(value=status, expires_at=now + self.cache_ttl)
        return status

    def invalidate(self) -> None:
        self._cache = StatusCache()

    # -- printers / config --

    def get_printers(self) -> List[PrinterDescriptor]:
        try:
            r = self.session.get(f"{self.base_url}/printers", headers=self._headers(), timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
            if not isinstance(data, dict):
                return []
            return [PrinterDescriptor.model_validate(p) for p in data.get("printers", [])]
        except (requests.RequestException, ValueError, ModelError) as e:
            logger.debug("Listing printers failed: %s", e)
            return []

    def configure_printer(self, printer_name: Optional[str]) -> bool:
        self.printer_name = printer_name
        self.invalidate()
        try:
            r = self.session.post(
                f"{self.base_url}/config",
                json=PrinterConfig(printer_name=printer_name).model_dump(by_alias=True),
                headers=self._headers(),
                timeout=self.timeout,
            )
            return r.status_code < 400
        except requests.RequestException as e:
            logger.debug("Configuring printer failed: %s", e)
            return False

    def _resolve_printer(self, printer: Optional[str], status: BridgeStatus) -> Optional[str]:
        if printer:
            return printer
        if self.printer_name:
            return self.printer_name
        if status.printer_config is not None:
            return status.printer_config.printer_name
        return None

    # -- printing --

    def _post(self, path: str, body: Dict[str, Any], printer: Optional[str]) -> PrintResult:
        status = self.check_status()
        if not status.is_available:
            return PrintResult(success=False, error=BRIDGE_UNAVAILABLE)
        body = {"printer": self._resolve_printer(printer, status), **body}
        try:
            r = self.session.post(
                f"{self.base_url}{path}", json=body, headers=self._headers(), timeout=self.print_timeout
            )
        except requests.RequestException as e:
            # the bridge went away since the last probe
            self.invalidate()
            return PrintResult(success=False, error=str(e) or BRIDGE_UNAVAILABLE)
        try:
            data = r.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return PrintResult(success=False, error=f"Unexpected response from bridge (HTTP {r.status_code})")
        if r.status_code < 400 and data.get("success"):
            return PrintResult(success=True)
        return PrintResult(success=False, error=data.get("error") or f"HTTP {r.status_code}")

    def print_receipt(self, receipt: ReceiptLike, printer: Optional[str] = None) -> PrintResult:
        try:
            wire = _receipt_wire(receipt)
        except ModelError as e:
            return PrintResult(success=False, error=f"Invalid receipt: {e.error_count()} error(s)")
        return self._post("/print", {"receipt": wire}, printer)

    def print_text(self, text: str, printer: Optional[str] = None) -> PrintResult:
        return self._post("/print", {"text": text}, printer)

    def print_raw(self, data: bytes, printer: Optional[str] = None) -> PrintResult:
        return self._post("/print-raw", {"data": base64.b64encode(data).decode("ascii")}, printer)

    def open_cash_drawer(self, printer: Optional[str] = None) -> PrintResult:
        return self._post("/cash-drawer", {}, printer)

    def test_print(self, printer: Optional[str] = None) -> PrintResult:
        return self._post("/test-print", {}, printer)


class LocalPrintBridge:
    """
    Same contract as PrintBridgeClient, for a desktop shell that runs the
    print service in process instead of talking HTTP to it.
    """

    def __init__(self, service):
        self.service = service
        self.printer_name: Optional[str] = None

    def check_status(self) -> BridgeStatus:
        return BridgeStatus(is_available=True, version=__version__, printer_config=self.service.config)

    def invalidate(self) -> None:
        pass

    def get_printers(self) -> List[PrinterDescriptor]:
        return self.service.list_printers()

    def configure_printer(self, printer_name: Optional[str]) -> bool:
        self.printer_name = printer_name
        try:
            self.service.update_config(PrinterConfig(printer_name=printer_name))
            return True
        except BridgeError as e:
            logger.debug("Configuring printer failed: %s", e.message)
            return False
        except Exception:
            logger.exception("Configuring printer failed")
            return False

    def _run(self, fn, printer: Optional[str], *args) -> PrintResult:
        printer = printer or self.printer_name or self.service.config.printer_name
        try:
            fn(printer, *args)
            return PrintResult(success=True)
        except BridgeError as e:
            return PrintResult(success=False, error=e.message)
        except Exception as e:
            logger.exception("Local print failed")
            return PrintResult(success=False, error=str(e) or type(e).__name__)

    def print_receipt(self, receipt: ReceiptLike, printer: Optional[str] = None) -> PrintResult:
        if not isinstance(receipt, Receipt):
            try:
                receipt = Receipt.model_validate(receipt)
            except ModelError as e:
                return PrintResult(success=False, error=f"Invalid receipt: {e.error_count()} error(s)")
        return self._run(self.service.print_receipt, printer, receipt)

    def print_text(self, text: str, printer: Optional[str] = None) -> PrintResult:
        data = escpos.build_text(text, encoding=self.service.encoding)
        return self._run(self.service.dispatch, printer, data)

    def print_raw(self, data: bytes, printer: Optional[str] = None) -> PrintResult:
        return self._run(self.service.dispatch, printer, data)

    def open_cash_drawer(self, printer: Optional[str] = None) -> PrintResult:
        return self._run(self.service.open_drawer, printer)

    def test_print(self, printer: Optional[str] = None) -> PrintResult:
        return self._run(self.service.test_print, printer)
