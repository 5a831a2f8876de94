from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ...config import AppConfig
from ...core import ConversionService
from ...errors import AccessError, BusyError, ConversionError, InputError, LibraryLoadError
from ...models import ConversionRequest, ConversionResult, SourceKind
from ...utils import pdf_filename
from ..dependencies import get_config, get_fetcher, get_service
from ..schemas import ErrorDetail, HTMLConvertRequest, PageConvertRequest

router = APIRouter(tags=["conversion"])

PDF_MEDIA_TYPE = "application/pdf"


def _status_for(exc: ConversionError) -> int:
    if isinstance(exc, InputError):
        return 413 if exc.code == "SIZE_LIMIT" else 400
    if isinstance(exc, AccessError):
        return 403
    if isinstance(exc, BusyError):
        return 409
    if isinstance(exc, LibraryLoadError):
        return 503
    return 500


def _http_error(exc: ConversionError) -> HTTPException:
    detail = ErrorDetail(code=exc.code, stage=exc.stage.value, message=str(exc))
    return HTTPException(status_code=_status_for(exc), detail=detail.model_dump())


def _pdf_response(data: bytes, filename: str, result: ConversionResult) -> Response:
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "X-Run-Id": result.run_id,
    }
    if result.page_count is not None:
        headers["X-Page-Count"] = str(result.page_count)
    return Response(content=data, media_type=PDF_MEDIA_TYPE, headers=headers)


async def _convert_to_bytes(convert: Callable[[Path], ConversionResult]) -> tuple[bytes, ConversionResult]:
    with tempfile.TemporaryDirectory(prefix="htmlpdf-") as tmp:
        try:
            result = await asyncio.to_thread(convert, Path(tmp) / "output.pdf")
        except ConversionError as exc:
            raise _http_error(exc) from exc
        return result.output_path.read_bytes(), result


@router.post("/convert", summary="Convert an HTML document or fragment")
async def convert_html(
    payload: HTMLConvertRequest,
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
) -> Response:
    try:
        settings = payload.settings.apply(config.defaults)
    except ConversionError as exc:
        raise _http_error(exc) from exc
    request = ConversionRequest(
        source_kind=SourceKind.RAW_HTML,
        html_content=payload.html,
        settings=settings,
        base_url=payload.base_url,
        source_label="<api>",
    )
    data, result = await _convert_to_bytes(lambda target: service.convert(request, target, backend=payload.backend))
    return _pdf_response(data, pdf_filename(settings.filename), result)


@router.post("/convert/page", summary="Capture a web page, or part of it, as PDF")
async def convert_page(
    payload: PageConvertRequest,
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    fetcher: Callable[[str], str] = Depends(get_fetcher),
) -> Response:
    try:
        settings = payload.settings.apply(config.defaults)
    except ConversionError as exc:
        raise _http_error(exc) from exc
    data, result = await _convert_to_bytes(
        lambda target: service.convert_url(
            payload.url,
            target,
            selector=payload.selector,
            settings=settings,
            backend=payload.backend,
            fetcher=fetcher,
        )
    )
    return _pdf_response(data, pdf_filename(settings.filename), result)


__all__ = ["router"]
