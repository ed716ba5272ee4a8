# continuity_sync/remote_api/utils.py
#
#
# Imports
import base64
import binascii
from typing import Dict, Any, Optional, Iterable, Tuple, Set
#
# 3rd-party Libraries
from pydantic import BaseModel
#
# Local Imports
from continuity_sync.Constants import EXTENSIONS_BY_CONTENT_TYPE
#
#######################################################################################################################
#
# Functions:

DATA_URI_PREFIX = "data:"


def model_to_row(model_instance: BaseModel, exclude: Optional[Set[str]] = None) -> Dict[str, Any]:
    """
    Converts a row model into a JSON-ready dict for the REST API.
    None values are kept so an upsert clears columns that were emptied locally.
    """
    return model_instance.model_dump(mode="json", exclude=exclude)


def _format_filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _quote_in_value(value: Any) -> str:
    text = _format_filter_value(value).replace('\\', '\\\\').replace('"', '\\"')
    return f'"{text}"'


def build_filter_params(
    eq: Optional[Dict[str, Any]] = None,
    neq: Optional[Dict[str, Any]] = None,
    in_: Optional[Dict[str, Iterable[Any]]] = None,
) -> Dict[str, str]:
    """
    Builds PostgREST horizontal-filter query params.

    build_filter_params(eq={"project_id": "p1"}, neq={"storage_path": "a/b.pdf"})
        -> {"project_id": "eq.p1", "storage_path": "neq.a/b.pdf"}

    A column may only appear once across the three groups.
    """
    params: Dict[str, str] = {}
    for column, value in (eq or {}).items():
        params[column] = f"eq.{_format_filter_value(value)}"
    for column, value in (neq or {}).items():
        if column in params:
            raise ValueError(f"Column '{column}' used in more than one filter")
        params[column] = f"neq.{_format_filter_value(value)}"
    for column, values in (in_ or {}).items():
        if column in params:
            raise ValueError(f"Column '{column}' used in more than one filter")
        joined = ",".join(_quote_in_value(v) for v in values)
        params[column] = f"in.({joined})"
    return params


def is_data_uri(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(DATA_URI_PREFIX)


def decode_data_uri(data_uri: str) -> Tuple[bytes, str]:
    """
    Decodes a base64 data URI ("data:application/pdf;base64,JVBERi0...") into (bytes, content_type).

    Raises:
        ValueError: if the string is not a base64 data URI or the payload is not valid base64.
    """
    if not is_data_uri(data_uri):
        raise ValueError("Not a data URI")
    header, sep, payload = data_uri.partition(",")
    if not sep:
        raise ValueError("Data URI has no payload separator")
    meta = header[len(DATA_URI_PREFIX):]
    parts = meta.split(";")
    if "base64" not in parts[1:]:
        raise ValueError("Only base64 data URIs are supported")
    content_type = parts[0] or "application/octet-stream"
    try:
        return base64.b64decode(payload, validate=True), content_type
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload in data URI: {e}") from e


def encode_data_uri(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def extension_for_content_type(content_type: Optional[str], default: str = "bin") -> str:
    if not content_type:
        return default
    return EXTENSIONS_BY_CONTENT_TYPE.get(content_type.split(";")[0].strip().lower(), default)

#
# End of utils.py
#######################################################################################################################
