"""
bgtheme v1 API Routes
Derive themes from uploaded images and read the persisted themes.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from bgtheme.config import Config, config
from bgtheme.errors import ClusteringError, DecodeError, StoreError
from bgtheme.schemas import (
    ErrorResponse, StoredThemeResponse, ThemeColors, ThemeComponents, ThemeDeriveRequest, ThemeResponse,
)
from bgtheme.services.colors.sampling import decode_base64_payload
from bgtheme.services.colors.theme import ResolvedTheme
from bgtheme.services.orchestrator import DerivationResult, ThemeOrchestrator, build_orchestrator
from bgtheme.utils.metrics import get_metrics

router = APIRouter(prefix="/v1", tags=["Theme derivation"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid mode or empty file"},
    413: {"model": ErrorResponse, "description": "File too large"},
    415: {"model": ErrorResponse, "description": "Unsupported media type"},
    422: {"model": ErrorResponse, "description": "Image could not be decoded or clustered"},
    500: {"model": ErrorResponse, "description": "Theme store write failed"},
}

_orchestrator: Optional[ThemeOrchestrator] = None


def get_orchestrator() -> ThemeOrchestrator:
    """Shared orchestrator backed by the configured state and config directories."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(config)
    return _orchestrator


def _parse_mode(mode: str) -> bool:
    if not Config.validate_mode(mode):
        raise HTTPException(status_code=400, detail=f"mode must be one of: {', '.join(Config.MODES)}")
    return mode == "dark"


def _theme_models(theme: ResolvedTheme) -> Dict[str, Any]:
    return {
        "theme": ThemeColors(**theme.hex()),
        "components": ThemeComponents(**theme.to_dict()),
    }


def _to_response(result: DerivationResult) -> ThemeResponse:
    data = result.to_dict()
    return ThemeResponse(
        derivation_id=result.derivation_id,
        mode=result.mode,
        identity=result.identity,
        palette=data["palette"],
        ranked=data["ranked"],
        cache_source=result.cache_source,
        persisted_to=result.persisted_to,
        timings_ms=data["timings_ms"],
        **_theme_models(result.theme),
    )


def _run_derivation(orchestrator: ThemeOrchestrator, data: bytes, is_dark: bool,
                    cache_ok: bool, persist: bool, randomize: Optional[bool]) -> ThemeResponse:
    try:
        result = orchestrator.derive_from_bytes(
            data, is_dark, persist=persist, use_cache=cache_ok, randomize=randomize
        )
    except (DecodeError, ClusteringError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _to_response(result)


@router.post("/theme",
             response_model=ThemeResponse,
             responses=ERROR_RESPONSES,
             summary="Derive theme from upload",
             description="Derive background, accent, neutral and text colors from an uploaded image")
def derive_theme(
    file: UploadFile = File(..., description="Image file"),
    mode: str = Query("dark", description="Theme mode: dark or light"),
    cache_ok: bool = Query(True, description="Allow cache usage"),
    persist: bool = Query(False, description="Write the result to the theme store"),
    randomize: Optional[bool] = Query(None, description="Override randomized selection"),
    orchestrator: ThemeOrchestrator = Depends(get_orchestrator),
):
    is_dark = _parse_mode(mode)

    if file.content_type not in Config.SUPPORTED_MIME_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported media type: {file.content_type}")

    data = file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > config.MAX_FILE_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File exceeds {config.MAX_FILE_MB} MB")

    return _run_derivation(orchestrator, data, is_dark, cache_ok, persist, randomize)


@router.post("/theme/base64",
             response_model=ThemeResponse,
             responses=ERROR_RESPONSES,
             summary="Derive theme from base64 image")
def derive_theme_base64(
    request: ThemeDeriveRequest,
    mode: str = Query("dark", description="Theme mode: dark or light"),
    cache_ok: bool = Query(True, description="Allow cache usage"),
    persist: bool = Query(False, description="Write the result to the theme store"),
    randomize: Optional[bool] = Query(None, description="Override randomized selection"),
    orchestrator: ThemeOrchestrator = Depends(get_orchestrator),
):
    is_dark = _parse_mode(mode)
    try:
        data = decode_base64_payload(request.image_b64)
    except DecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return _run_derivation(orchestrator, data, is_dark, cache_ok, persist, randomize)


@router.get("/theme/{mode}", response_model=StoredThemeResponse, summary="Persisted theme")
def get_stored_theme(mode: str, orchestrator: ThemeOrchestrator = Depends(get_orchestrator)):
    is_dark = _parse_mode(mode)
    if orchestrator.store is None:
        raise HTTPException(status_code=404, detail="No theme store configured")

    theme = orchestrator.store.load_theme(is_dark)
    if theme is None:
        raise HTTPException(status_code=404, detail=f"No {mode} theme has been derived yet")
    return StoredThemeResponse(mode=mode, **_theme_models(theme))


@router.get("/metrics", summary="Derivation metrics")
def get_derivation_metrics(orchestrator: ThemeOrchestrator = Depends(get_orchestrator)):
    summary = get_metrics().get_summary()
    summary["cache"] = orchestrator.cache.get_cache_stats()
    return summary
