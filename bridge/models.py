from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BridgeModel(BaseModel):
    # Wire format is camelCase (browser), Python side is snake_case.
    # NaN and Infinity parse as JSON floats; amounts must be finite.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ReceiptItem(BridgeModel):
    name: str = ""
    quantity: float = 1
    total: Optional[float] = None
    unit_price: Optional[float] = None
    modifiers: Optional[Union[str, List[str]]] = None


class Receipt(BridgeModel):
    logo: Optional[str] = None  # data URI, http(s) URL or bare base64
    logo_width: Optional[int] = Field(None, gt=0)
    company_name: Optional[str] = None
    header_lines: List[str] = Field(default_factory=list)
    order_number: Optional[Union[str, int]] = None
    date: Optional[str] = None
    cashier: Optional[str] = None
    items: List[ReceiptItem] = Field(default_factory=list)
    subtotal: Optional[float] = None
    tax_amount: Optional[float] = None
    discount: Optional[float] = None
    total: Optional[float] = None
    payment_method: Optional[str] = None
    cash_received: Optional[float] = None
    change: Optional[float] = None
    footer_lines: List[str] = Field(default_factory=list)
    thank_you_message: Optional[str] = None
    open_cash_drawer: bool = False
    cut_paper: bool = True


class PrinterDescriptor(BridgeModel):
    name: str
    is_default: bool = False
    type: str = "system"  # system|network


class PrintJobIn(BridgeModel):
    printer: Optional[str] = Field(None, validation_alias=AliasChoices("printer", "printerName"))
    raw: Optional[str] = None  # base64
    receipt: Optional[Receipt] = None
    text: Optional[str] = None


class PrintRawIn(BridgeModel):
    printer: Optional[str] = Field(None, validation_alias=AliasChoices("printer", "printerName"))
    data: Optional[str] = Field(None, validation_alias=AliasChoices("data", "raw"))


class PrinterRequest(BridgeModel):
    printer: Optional[str] = Field(None, validation_alias=AliasChoices("printer", "printerName"))


class PrinterConfig(BridgeModel):
    printer_name: Optional[str] = None


class PrintResult(BridgeModel):
    success: bool
    error: Optional[str] = None


class BridgeStatus(BridgeModel):
    is_available: bool
    version: Optional[str] = None
    printer_config: Optional[PrinterConfig] = None
