"""
Comparison Routes - Web API for the Property Comparison Engine

JSON endpoints for dashboards, comparison runs, stored results and value
reconciliation. The engine instance lives on app.state and is injected per
request.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from core.comparison import (
    ChartKind,
    ComparisonEngine,
    DashboardLayout,
    MetricConfig,
    MetricKind,
    VisualizationMode,
)
from core.comparison.engine import (
    DEFAULT_MAX_COMPARABLES,
    DEFAULT_MAX_DISTANCE_MILES,
    DEFAULT_SIMILARITY_THRESHOLD,
)


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/comparisons", tags=["comparison"])


def get_engine(request: Request) -> ComparisonEngine:
    """Engine constructed at startup by create_app."""
    return request.app.state.engine


# =============================================================================
# Request Bodies
# =============================================================================


class MetricConfigBody(BaseModel):
    metric: MetricKind
    display_name: str
    chart_kind: ChartKind = ChartKind.BAR
    enabled: bool = True
    position: int = 0
    custom_field: Optional[str] = None
    custom_unit: Optional[str] = None
    custom_formula: Optional[str] = None
    value_mapping: List[dict] = Field(default_factory=list)
    color_scale: List[str] = Field(default_factory=list)

    def to_model(self) -> MetricConfig:
        return MetricConfig(**self.model_dump())


class LayoutItemBody(BaseModel):
    id: str
    metric: MetricKind
    row: int
    column: int
    row_span: int = 1
    column_span: int = 1


class LayoutBody(BaseModel):
    rows: int = Field(gt=0)
    columns: int = Field(gt=0)
    items: List[LayoutItemBody] = Field(default_factory=list)

    def to_model(self) -> DashboardLayout:
        return DashboardLayout.from_dict(self.model_dump(mode="json"))


class DashboardCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    visualization_mode: VisualizationMode = VisualizationMode.CHART
    metrics: List[MetricConfigBody] = Field(min_length=1)
    layout: Optional[LayoutBody] = None
    is_default: bool = False


class DashboardUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    visualization_mode: Optional[VisualizationMode] = None
    metrics: Optional[List[MetricConfigBody]] = None
    layout: Optional[LayoutBody] = None
    is_default: Optional[bool] = None


class CompareRequest(BaseModel):
    subject_id: str
    comparable_ids: List[str]
    dashboard_id: Optional[str] = None


class OneClickRequest(BaseModel):
    subject_id: str = Field(min_length=1)
    max_comparables: int = Field(DEFAULT_MAX_COMPARABLES, gt=0)
    dashboard_id: Optional[str] = None
    similarity_threshold: float = Field(DEFAULT_SIMILARITY_THRESHOLD, ge=0, le=1)
    max_distance: float = Field(DEFAULT_MAX_DISTANCE_MILES, gt=0)


class ReconcileRequest(BaseModel):
    reconciled_value: float
    notes: Optional[str] = None


# =============================================================================
# Dashboards
# =============================================================================


@router.get("/dashboards")
async def list_dashboards(engine: ComparisonEngine = Depends(get_engine)):
    dashboards = await engine.get_dashboards()
    return {"dashboards": [d.to_dict() for d in dashboards]}


@router.get("/dashboards/default")
async def default_dashboard(engine: ComparisonEngine = Depends(get_engine)):
    dashboard = await engine.get_default_dashboard()
    if dashboard is None:
        raise HTTPException(status_code=404, detail="No dashboards configured")
    return dashboard.to_dict()


@router.get("/dashboards/{dashboard_id}")
async def get_dashboard(dashboard_id: str, engine: ComparisonEngine = Depends(get_engine)):
    dashboard = await engine.get_dashboard(dashboard_id)
    if dashboard is None:
        raise HTTPException(status_code=404, detail=f"Dashboard {dashboard_id} not found")
    return dashboard.to_dict()


@router.post("/dashboards", status_code=201)
async def create_dashboard(body: DashboardCreate, engine: ComparisonEngine = Depends(get_engine)):
    dashboard = await engine.create_dashboard(
        name=body.name,
        metrics=[m.to_model() for m in body.metrics],
        description=body.description,
        visualization_mode=body.visualization_mode,
        layout=body.layout.to_model() if body.layout else None,
        is_default=body.is_default,
    )
    return dashboard.to_dict()


@router.patch("/dashboards/{dashboard_id}")
async def update_dashboard(
    dashboard_id: str,
    body: DashboardUpdate,
    engine: ComparisonEngine = Depends(get_engine),
):
    updates = {}
    for name in body.model_fields_set:
        value = getattr(body, name)
        if name == "metrics" and value is not None:
            value = [m.to_model() for m in value]
        elif name == "layout" and value is not None:
            value = value.to_model()
        updates[name] = value

    dashboard = await engine.update_dashboard(dashboard_id, updates)
    return dashboard.to_dict()


@router.delete("/dashboards/{dashboard_id}")
async def delete_dashboard(dashboard_id: str, engine: ComparisonEngine = Depends(get_engine)):
    if not await engine.delete_dashboard(dashboard_id):
        raise HTTPException(status_code=404, detail=f"Dashboard {dashboard_id} not found")
    return {"deleted": True}


@router.post("/dashboards/{dashboard_id}/default")
async def set_default_dashboard(dashboard_id: str, engine: ComparisonEngine = Depends(get_engine)):
    if not await engine.set_default_dashboard(dashboard_id):
        raise HTTPException(status_code=404, detail=f"Dashboard {dashboard_id} not found")
    return {"default_dashboard_id": dashboard_id}


# =============================================================================
# Comparisons
# =============================================================================


@router.post("")
async def compare_properties(body: CompareRequest, engine: ComparisonEngine = Depends(get_engine)):
    result = await engine.compare_properties(
        body.subject_id,
        body.comparable_ids,
        body.dashboard_id,
    )
    return result.to_dict()


@router.post("/one-click")
async def one_click_comparison(body: OneClickRequest, engine: ComparisonEngine = Depends(get_engine)):
    result = await engine.one_click_comparison(
        body.subject_id,
        max_comparables=body.max_comparables,
        dashboard_id=body.dashboard_id,
        similarity_threshold=body.similarity_threshold,
        max_distance=body.max_distance,
    )
    return result.to_dict()


@router.get("/results")
async def list_results(
    subject_id: Optional[str] = Query(None, description="Filter by subject property"),
    engine: ComparisonEngine = Depends(get_engine),
):
    results = await engine.get_comparison_results(subject_id)
    return {"results": [r.to_dict() for r in results]}


@router.get("/results/{result_id}")
async def get_result(result_id: str, engine: ComparisonEngine = Depends(get_engine)):
    result = await engine.get_comparison_result(result_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Comparison result {result_id} not found")
    return result.to_dict()


@router.post("/results/{result_id}/reconciliation")
async def reconcile_value(
    result_id: str,
    body: ReconcileRequest,
    engine: ComparisonEngine = Depends(get_engine),
):
    saved = await engine.save_reconciled_value(result_id, body.reconciled_value, body.notes)
    if not saved:
        raise HTTPException(
            status_code=404,
            detail=f"Comparison result {result_id} not found or has no comparable prices",
        )
    result = await engine.get_comparison_result(result_id)
    return result.value_reconciliation.to_dict()


# =============================================================================
# Cache
# =============================================================================


@router.get("/cache")
async def cache_stats(engine: ComparisonEngine = Depends(get_engine)):
    return engine.cache_stats()


@router.delete("/cache")
async def clear_cache(engine: ComparisonEngine = Depends(get_engine)):
    engine.clear_cache()
    return engine.cache_stats()
