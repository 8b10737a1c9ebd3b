"""MKG data models.

These are MKG-specific models that map to the MKG REST document tables:
- vorh / vorr: sales order header / order line
- vofh / vofr: quote header / quote line
- stlh: bill of materials (part list) header
- debi: debtor (customer)

Field names are the MKG column names, so model_dump() yields the wire row.
Response helpers understand both envelopes MKG returns:
    {"response": {"ResultData": [{"<table>": [...], "t_messages": [...]}]}}
    {"data": [...]}
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Base Model
# =============================================================================

class MkgBaseModel(BaseModel):
    """Base model for MKG rows."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    def to_row(self) -> Dict[str, Any]:
        """Wire representation, without unset optional columns."""
        return self.model_dump(mode="json", exclude_none=True)


def build_request(table: str, rows: List[MkgBaseModel]) -> Dict[str, Any]:
    """Wrap rows in the MKG InputData envelope.

    {"request": {"InputData": {"vorh": [ {...} ]}}}
    """
    return {"request": {"InputData": {table: [row.to_row() for row in rows]}}}


def document_path(table: str, key: Optional[str] = None) -> str:
    """Documents/<table>/ or Documents/<table>/<key> for a single record."""
    if key:
        return f"Documents/{table}/{quote(key, safe='+-_.')}"
    return f"Documents/{table}/"


def document_query(
    table: str,
    filter_expr: Optional[str] = None,
    fields: Sequence[str] = (),
    num_rows: Optional[int] = None,
) -> str:
    """Query endpoint for a document table.

    document_query("vorh", 'vorh_ref_uw = "PO-1"', ["vorh_num"], 10)
    -> 'Documents/vorh/?Filter=vorh_ref_uw%20%3D%20%22PO-1%22&FieldList=vorh_num&NumRows=10'
    """
    params = []
    if filter_expr:
        params.append(f"Filter={quote(filter_expr, safe='')}")
    if fields:
        params.append(f"FieldList={','.join(fields)}")
    if num_rows is not None:
        params.append(f"NumRows={num_rows}")
    path = document_path(table)
    return f"{path}?{'&'.join(params)}" if params else path


# =============================================================================
# Sales Orders
# =============================================================================

class VorhRow(MkgBaseModel):
    """Sales order header.

    Maps to: Documents/vorh/
    """
    admi_num: str
    debi_num: str
    rela_num: str
    vorh_ref_uw: str = Field(..., description="Customer reference (PO number)")
    vorh_omschrijving: str
    vorh_datum: str
    vorh_gewenste_leverdatum: str
    vorh_status: str = "OPEN"
    vorh_prioriteit: str = "NORMAL"
    vorh_bestelcode_extern: str = Field(..., description="External order code (PO number)")
    vorh_contact: Optional[str] = None
    vorh_memo: Optional[str] = None


class VorrRow(MkgBaseModel):
    """Sales order line.

    Maps to: Documents/vorr/
    """
    admi_num: str
    vorh_num: str
    vorr_arti_code: str
    vorr_oms_1: str
    vorr_order_aantal: float
    vorr_eenh_order: str
    vorr_prijs_order: float = 0.0
    vorr_totaal_prijs: float = 0.0
    vorr_prijs: float = 0.0
    vorr_totaal_excl: float = 0.0
    vorr_gewenste_leverdatum: str
    vorr_leverdatum: str
    vorr_ref_extern: str
    vorr_memo_extern: Optional[str] = None
    vorr_regel: str = "001"
    vorr_tekening_nr: Optional[str] = None
    vorr_revisie: str = "00"
    vorr_leverancier_artikelcode: Optional[str] = None
    vorr_prioriteit: str = "NORMAL"
    vorr_status: str = "OPEN"
    vorr_memo: Optional[str] = None
    vorr_bron: str = "EMAIL_AUTOMATION"
    vorr_verwerkt_door: str = "ELCOTEC_BOT"


# =============================================================================
# Quotes
# =============================================================================

class VofhRow(MkgBaseModel):
    """Quote header.

    Maps to: Documents/vofh/
    """
    admi_num: str
    debi_num: str
    rela_num: str
    vofh_referentie: str
    vofh_ref_extern: str
    vofh_omschrijving: str
    vofh_datum: str
    vofh_geldig_tot: str
    vofh_status: str = "OPEN"
    vofh_prioriteit: str = "NORMAL"
    vofh_contact: Optional[str] = None
    vofh_memo: Optional[str] = None


class VofrRow(MkgBaseModel):
    """Quote line.

    Maps to: Documents/vofr/
    """
    admi_num: str
    vofh_num: str
    vofr_arti_code: str
    vofr_oms_1: str
    vofr_aantal: float
    vofr_eenh_order: str
    vofr_prijs: float = 0.0
    vofr_totaal_prijs: float = 0.0
    vofr_gewenste_leverdatum: Optional[str] = None
    vofr_ref_extern: str
    vofr_regel: str = "001"
    vofr_tekening_nr: Optional[str] = None
    vofr_revisie: str = "00"
    vofr_klant_artikelcode: Optional[str] = None
    vofr_prioriteit: str = "NORMAL"
    vofr_status: str = "OPEN"
    vofr_memo: Optional[str] = None
    vofr_bron: str = "EMAIL_AUTOMATION"
    vofr_verwerkt_door: str = "ELCOTEC_BOT"


# =============================================================================
# BOM Revisions
# =============================================================================

class PartListRevisionRow(MkgBaseModel):
    """Input row for the stlh s_create_revision service.

    The t_* flags select which parts of the source BOM are copied.
    """
    RowKey: int = 1
    t_stlh_num: str = Field(..., description="Source BOM id")
    t_stlh_new: str = Field(..., description="New BOM id")
    t_oms: str
    t_copy_stlh: bool = True        # BOM structure
    t_copy_oms: bool = True         # descriptions
    t_half: bool = True             # sub-assemblies
    t_mat: bool = True              # materials
    t_uit: bool = True              # outsourcing
    t_bew: bool = True              # operations
    t_arti: bool = False            # no new item
    t_spec_mat: bool = True
    t_spec_bew: bool = True
    t_ingaveprijzen: bool = True
    t_doc: bool = True
    t_parm: bool = True
    t_func: bool = True


# =============================================================================
# Customers
# =============================================================================

class DebiRecord(MkgBaseModel):
    """Debtor record as returned by a Documents/debi query."""
    admi_num: Optional[str] = None
    debi_num: Optional[str] = None
    rela_num: Optional[str] = None
    debi_naam: Optional[str] = None
    debi_actief: Optional[bool] = None


# =============================================================================
# Response Parsing
# =============================================================================

def _result_data(body: Any) -> List[Dict[str, Any]]:
    if not isinstance(body, dict):
        return []
    response = body.get("response")
    if not isinstance(response, dict):
        return []
    result_data = response.get("ResultData")
    if isinstance(result_data, dict):
        return [result_data]
    if isinstance(result_data, list):
        return [item for item in result_data if isinstance(item, dict)]
    return []


def iter_records(body: Any, table: str) -> Iterator[Dict[str, Any]]:
    """Yield the records of `table` from either response envelope."""
    found = False
    for item in _result_data(body):
        rows = item.get(table)
        if isinstance(rows, list):
            for row in rows:
                if isinstance(row, dict):
                    found = True
                    yield row
    if found or not isinstance(body, dict):
        return
    data = body.get("data")
    if isinstance(data, list):
        for row in data:
            if isinstance(row, dict):
                yield row


def first_record(body: Any, table: str) -> Optional[Dict[str, Any]]:
    return next(iter_records(body, table), None)


def extract_header_id(body: Any, table: str, id_field: str) -> Optional[str]:
    """Find the id MKG assigned to a newly created header.

    Looks in response.OutputData.<table>[0], then response.ResultData[].<table>[],
    then on the ResultData items and the top level.
    """
    if not isinstance(body, dict):
        return None

    response = body.get("response")
    if isinstance(response, dict):
        output = response.get("OutputData")
        if isinstance(output, dict):
            rows = output.get(table)
            if isinstance(rows, list) and rows and isinstance(rows[0], dict):
                value = rows[0].get(id_field)
                if value not in (None, ""):
                    return str(value)

    for row in iter_records(body, table):
        value = row.get(id_field)
        if value not in (None, ""):
            return str(value)

    for item in _result_data(body):
        value = item.get(id_field)
        if value not in (None, ""):
            return str(value)

    value = body.get(id_field)
    if value not in (None, ""):
        return str(value)
    return None


def iter_messages(body: Any) -> Iterator[Dict[str, Any]]:
    """Yield t_messages entries from response.ResultData[]."""
    for item in _result_data(body):
        messages = item.get("t_messages")
        if isinstance(messages, list):
            for message in messages:
                if isinstance(message, dict):
                    yield message


def extract_error_messages(body: Any) -> List[str]:
    """t_melding texts of error messages (t_type 1).

    Falls back to every message text when none is flagged as an error.
    """
    messages = list(iter_messages(body))
    errors = [m for m in messages if str(m.get("t_type", "")) == "1"]
    chosen = errors or messages
    return [str(m["t_melding"]) for m in chosen if m.get("t_melding")]


def has_error_messages(body: Any) -> bool:
    """True when the body carries a t_type 1 message or an error key."""
    if isinstance(body, dict) and (body.get("error") or body.get("Error")):
        return True
    return any(str(m.get("t_type", "")) == "1" for m in iter_messages(body))


def error_message_from_body(body: Any, raw: str = "") -> str:
    """Human-readable error for a failed call."""
    messages = extract_error_messages(body)
    if messages:
        return "; ".join(messages)
    if isinstance(body, dict):
        for key in ("error", "Error"):
            if body.get(key):
                return str(body[key])
    if raw:
        return raw
    return "Empty response"
