# FILE: recall/llm/telemetry_router.py
"""
Diagnostics endpoints: backend descriptors, telemetry, provider/model switching.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from recall.llm.orchestrator import BackendOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])


class CapabilitiesModel(BaseModel):
    supports_model_selection: bool = False
    supports_streaming: bool = False
    requires_api_key: bool = False


class ProviderModel(BaseModel):
    name: str
    available: bool
    capabilities: CapabilitiesModel
    error: Optional[str] = None


class ProvidersResponse(BaseModel):
    current_provider: Optional[str] = None
    current_model: Optional[str] = None
    models: List[str] = Field(default_factory=list)
    providers: List[ProviderModel] = Field(default_factory=list)


class TelemetryResponse(BaseModel):
    ok: bool = True
    current_provider: Optional[str] = None
    providers: Dict[str, Any] = Field(default_factory=dict)


class SwitchRequest(BaseModel):
    name: str


class SwitchResponse(BaseModel):
    ok: bool
    current_provider: Optional[str] = None
    current_model: Optional[str] = None


def get_orchestrator(request: Request) -> BackendOrchestrator:
    return request.app.state.orchestrator


@router.get("/providers", response_model=ProvidersResponse)
async def list_providers(orchestrator: BackendOrchestrator = Depends(get_orchestrator)) -> ProvidersResponse:
    descriptors = await orchestrator.get_providers()
    return ProvidersResponse(
        current_provider=orchestrator.get_current_provider(),
        current_model=orchestrator.get_current_model(),
        models=orchestrator.get_models(),
        providers=[ProviderModel(**d.to_dict()) for d in descriptors],
    )


@router.get("/telemetry", response_model=TelemetryResponse)
def telemetry(orchestrator: BackendOrchestrator = Depends(get_orchestrator)) -> TelemetryResponse:
    try:
        snapshot = orchestrator.telemetry.get_snapshot().to_dict()
    except Exception:
        # Telemetry must never crash the API.
        logger.exception("[diagnostics] telemetry snapshot failed")
        return TelemetryResponse(ok=False)
    return TelemetryResponse(
        ok=True,
        current_provider=snapshot["current_provider"],
        providers=snapshot["providers"],
    )


@router.put("/provider", response_model=SwitchResponse)
async def switch_provider(
    req: SwitchRequest,
    orchestrator: BackendOrchestrator = Depends(get_orchestrator),
) -> SwitchResponse:
    if not await orchestrator.set_provider(req.name):
        raise HTTPException(status_code=409, detail=f"Provider not available: {req.name}")
    return SwitchResponse(
        ok=True,
        current_provider=orchestrator.get_current_provider(),
        current_model=orchestrator.get_current_model(),
    )


@router.put("/model", response_model=SwitchResponse)
def switch_model(
    req: SwitchRequest,
    orchestrator: BackendOrchestrator = Depends(get_orchestrator),
) -> SwitchResponse:
    if not orchestrator.set_model(req.name):
        raise HTTPException(status_code=409, detail=f"Model not selectable: {req.name}")
    return SwitchResponse(
        ok=True,
        current_provider=orchestrator.get_current_provider(),
        current_model=orchestrator.get_current_model(),
    )


__all__ = ["router", "get_orchestrator"]
