"""
ESC/POS command builder.

Pure functions: a Receipt (or plain text) goes in, the byte stream for the
printer comes out. Optional fields are omitted, never an error. The only
I/O is the logo, delegated to the raster encoder whose failures are logged
and leave the receipt without a logo.
"""
import logging
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from bridge import raster
from bridge.models import Receipt, ReceiptItem

logger = logging.getLogger("print_bridge.escpos")

ESC = b"\x1b"
GS = b"\x1d"
LF = b"\n"

INIT = ESC + b"@"
ALIGN_LEFT = ESC + b"a\x00"
ALIGN_CENTER = ESC + b"a\x01"
ALIGN_RIGHT = ESC + b"a\x02"
DOUBLE_ON = ESC + b"!\x30"  # double height + double width
DOUBLE_OFF = ESC + b"!\x00"
CUT_FULL = GS + b"V\x00"
# ESC p m t1 t2: pin 0, 25 x 2ms on, 250 x 2ms off
DRAWER_KICK = ESC + b"p\x00\x19\xfa"

SEPARATOR = "-" * 32
ITEM_NAME_WIDTH = 20
TRAILING_FEEDS = 3

_CENTS = Decimal("0.01")
# wide enough for any finite float once quantized to cents
_MONEY_CONTEXT = Context(prec=400)


def money(value) -> str:
    amount = Decimal(str(value or 0)).quantize(_CENTS, rounding=ROUND_HALF_UP, context=_MONEY_CONTEXT)
    return f"${amount}"


def _quantity(value) -> str:
    q = float(value)
    return str(int(q)) if q.is_integer() else str(q)


class CommandBuffer:
    """Ordered byte sequence; text goes through one encoding."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._parts: List[bytes] = []

    def raw(self, data: bytes) -> "CommandBuffer":
        self._parts.append(data)
        return self

    def text(self, value: str) -> "CommandBuffer":
        self._parts.append(value.encode(self.encoding, errors="replace"))
        return self

    def line(self, value: str = "") -> "CommandBuffer":
        return self.text(value + "\n")

    def lines(self, values: Iterable[str]) -> "CommandBuffer":
        for v in values:
            self.line(v)
        return self

    def emphasized(self, value: str) -> "CommandBuffer":
        return self.raw(DOUBLE_ON).line(value).raw(DOUBLE_OFF)

    def feed(self, n: int) -> "CommandBuffer":
        return self.raw(LF * n)

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


def _item_lines(item: ReceiptItem) -> List[str]:
    out = [
        f"{_quantity(item.quantity)}x {item.name[:ITEM_NAME_WIDTH]}",
        f"   {money(item.total)}",
    ]
    if item.unit_price is not None and item.quantity > 1:
        out.append(f"   @ {money(item.unit_price)} each")
    if item.modifiers:
        mods = [item.modifiers] if isinstance(item.modifiers, str) else item.modifiers
        out.extend(f"   + {m}" for m in mods)
    return out


def _logo(buf: CommandBuffer, receipt: Receipt, max_width: int, fetch_timeout: float):
    result = raster.try_encode_image(
        receipt.logo,
        max_width=receipt.logo_width or max_width,
        fetch_timeout=fetch_timeout,
    )
    if not result.ok:
        logger.warning("Logo omitted: %s", result.error)
        return
    buf.raw(result.data).feed(1)


def build_receipt(
    receipt: Receipt,
    logo_max_width: int = raster.DEFAULT_MAX_WIDTH,
    encoding: str = "utf-8",
    fetch_timeout: float = 5.0,
) -> bytes:
    buf = CommandBuffer(encoding)
    buf.raw(INIT)

    # header
    buf.raw(ALIGN_CENTER)
    if receipt.logo:
        _logo(buf, receipt, logo_max_width, fetch_timeout)
    if receipt.company_name:
        buf.emphasized(receipt.company_name)
    buf.lines(receipt.header_lines)
    buf.feed(1)
    buf.raw(ALIGN_LEFT)

    # order metadata
    if receipt.order_number is not None and receipt.order_number != "":
        buf.line(f"Order: {receipt.order_number}")
    if receipt.date:
        buf.line(f"Date: {receipt.date}")
    if receipt.cashier:
        buf.line(f"Cashier: {receipt.cashier}")

    buf.line(SEPARATOR)
    for item in receipt.items:
        buf.lines(_item_lines(item))
    buf.line(SEPARATOR)

    # totals
    buf.raw(ALIGN_RIGHT)
    if receipt.subtotal is not None:
        buf.line(f"Subtotal: {money(receipt.subtotal)}")
    if receipt.tax_amount is not None:
        buf.line(f"Tax: {money(receipt.tax_amount)}")
    if receipt.discount:
        buf.line(f"Discount: -{money(receipt.discount)}")
    buf.emphasized(f"TOTAL: {money(receipt.total)}")
    if receipt.payment_method:
        buf.line(f"Paid: {receipt.payment_method}")
    if receipt.cash_received:
        buf.line(f"Cash: {money(receipt.cash_received)}")
    if receipt.change:
        buf.line(f"Change: {money(receipt.change)}")

    # footer
    buf.raw(ALIGN_CENTER)
    buf.feed(1)
    buf.lines(receipt.footer_lines)
    if receipt.thank_you_message:
        buf.feed(1).line(receipt.thank_you_message)
    buf.raw(ALIGN_LEFT)

    buf.feed(TRAILING_FEEDS)
    if receipt.open_cash_drawer:
        buf.raw(DRAWER_KICK)
    if receipt.cut_paper:
        buf.raw(CUT_FULL)
    return buf.getvalue()


def build_text(text: str, cut: bool = True, encoding: str = "utf-8") -> bytes:
    buf = CommandBuffer(encoding).raw(INIT).text(text).feed(TRAILING_FEEDS)
    if cut:
        buf.raw(CUT_FULL)
    return buf.getvalue()


def drawer_kick() -> bytes:
    return DRAWER_KICK


def sample_receipt(company_name: Optional[str] = "Print Bridge") -> Receipt:
    """Receipt used by the test-print endpoint."""
    return Receipt(
        company_name=company_name,
        header_lines=["Test Receipt"],
        items=[
            ReceiptItem(name="Test Item 1", quantity=2, unit_price=5.00, total=10.00),
            ReceiptItem(name="Test Item 2", quantity=1, total=15.00),
        ],
        subtotal=25.00,
        tax_amount=2.50,
        total=27.50,
        payment_method="cash",
        cash_received=30.00,
        change=2.50,
        footer_lines=["Print Bridge is working!"],
        cut_paper=True,
    )
