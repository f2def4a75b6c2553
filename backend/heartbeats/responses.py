"""JSON and CSV responses that intermediaries must not cache."""
from typing import Any, Iterable

from fastapi.responses import JSONResponse, Response

# no-store: don't write it to disk anywhere
# no-cache + must-revalidate: defend against intermediate caches
NO_STORE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate"}


def json_response(data: dict, status: int = 200) -> JSONResponse:
    return JSONResponse(
        content=data,
        status_code=status,
        headers=NO_STORE_HEADERS,
        media_type="application/json; charset=utf-8",
    )


def ok_response() -> JSONResponse:
    """Bare acknowledgement."""
    return json_response({"ok": True})


def csv_response(header: str, lines: str) -> Response:
    return Response(
        content=header + lines,
        headers=NO_STORE_HEADERS,
        media_type="text/csv; charset=utf-8",
    )


def csv_escape(value: Any) -> str:
    """Quote a field if it contains a comma, quote or newline."""
    text = "" if value is None else str(value)
    if any(ch in text for ch in (",", '"', "\n")):
        return '"' + text.replace('"', '""') + '"'
    return text


def csv_line(values: Iterable[Any]) -> str:
    return ",".join(csv_escape(value) for value in values)
