import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Free-text measurement and style attributes, in form order
MEASUREMENT_FIELDS = (
    'lambai', 'bazo', 'shoulder', 'shoulder_down', 'kalar_size', 'chati',
    'mora', 'kamar', 'gira', 'shalwar', 'gira_shalwar', 'pancha', 'daman',
    'kanda', 'plat', 'samne', 'samne_size', 'dbl_side', 'pakat', 'pati',
    'kalar_ban', 'kaf', 'btn_design', 'chamak_pati_btn', 'salai',
    'design_no', 'karigar_name', 'size', 'notes',
)

ORDER_TEXT_FIELDS = MEASUREMENT_FIELDS + (
    'order_date', 'delivery_date', 'items_ordered',
)

AMOUNT_FIELDS = ('total_amount', 'advance_payment')


def parse_status_history(raw: Any) -> List[Dict[str, Any]]:
    """
    Decode the stored status history.
    Anything that is not a JSON list of objects decodes to an empty history.
    """
    if isinstance(raw, list):
        entries = raw
    elif not raw:
        return []
    else:
        try:
            entries = json.loads(raw)
        except (TypeError, ValueError):
            return []
    if not isinstance(entries, list):
        return []
    return [e for e in entries if isinstance(e, dict) and 'status' in e]


def _coerce_amount(value: Any) -> Any:
    if value is None:
        return 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
        try:
            return int(float(value))
        except ValueError:
            return value
    if isinstance(value, float):
        return int(value)
    return value


class StatusHistoryEntry(BaseModel):
    status: str
    timestamp: str = ''
    note: Optional[str] = None


class OrderFields(BaseModel):
    """Fields shared by every order shape; aliases follow the UI's camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )

    unique_id: Optional[str] = Field(None, alias='uniqueID')
    name: str = ''
    phone: str = ''
    address: str = ''

    lambai: str = ''
    bazo: str = ''
    shoulder: str = ''
    shoulder_down: str = ''
    kalar_size: str = ''
    chati: str = ''
    mora: str = ''
    kamar: str = ''
    gira: str = ''
    shalwar: str = ''
    gira_shalwar: str = Field('', alias='girashalwar')
    pancha: str = ''
    daman: str = ''
    kanda: str = ''
    plat: str = ''
    samne: str = ''
    samne_size: str = ''
    dbl_side: str = ''
    pakat: str = ''
    pati: str = ''
    kalar_ban: str = Field('', alias='kalar_Ban')
    kaf: str = ''
    btn_design: str = ''
    chamak_pati_btn: str = ''
    salai: str = ''
    design_no: str = ''
    karigar_name: str = ''
    size: str = ''
    notes: str = ''

    order_status: str = 'pending'
    order_date: str = ''
    delivery_date: str = ''
    items_ordered: str = ''
    total_amount: int = 0
    advance_payment: int = 0
    balance_amount: Optional[int] = None
    priority_level: str = 'normal'

    @field_validator('unique_id', mode='before')
    @classmethod
    def _unique_id_to_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, float) and not value.is_integer():
            raise ValueError('uniqueID must be a whole number')
        if isinstance(value, (int, float)):
            return str(int(value))
        return value

    @field_validator('name', 'phone', 'address', *ORDER_TEXT_FIELDS, mode='before')
    @classmethod
    def _text_or_blank(cls, value: Any) -> Any:
        if value is None:
            return ''
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator('order_status', mode='before')
    @classmethod
    def _status_default(cls, value: Any) -> Any:
        return value or 'pending'

    @field_validator('priority_level', mode='before')
    @classmethod
    def _priority_default(cls, value: Any) -> Any:
        return value or 'normal'

    @field_validator(*AMOUNT_FIELDS, mode='before')
    @classmethod
    def _amount(cls, value: Any) -> Any:
        return _coerce_amount(value)

    @field_validator('balance_amount', mode='before')
    @classmethod
    def _balance(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return _coerce_amount(value)


class OrderCreate(OrderFields):
    """Input for save and update; contact fields are mandatory."""
    unique_id: Optional[str] = Field(None, alias='uniqueID', pattern=r'^\d+$')
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)

    def resolved_balance(self) -> int:
        # A caller-supplied balance is stored as given
        if self.balance_amount is not None:
            return self.balance_amount
        return self.total_amount - self.advance_payment


class OrderRead(OrderFields):
    id: int
    unique_id: str = Field(..., alias='uniqueID')
    balance_amount: int = 0
    status_history: List[StatusHistoryEntry] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('balance_amount', mode='before')
    @classmethod
    def _balance(cls, value: Any) -> Any:
        # Rows written by other tools may hold NULL
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        return _coerce_amount(value)

    @field_validator('status_history', mode='before')
    @classmethod
    def _decode_history(cls, value: Any) -> Any:
        return parse_status_history(value)


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class LookupHit(BaseModel):
    """One lookup result with the display fields already highlighted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order: OrderRead
    score: float
    exact_id: bool = False
    highlighted_id: str = ''
    highlighted_name: str = ''
    highlighted_phone: str = ''
