from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from routewatch.analytics.annotator import annotate_route, annotate_routes, annotation_spec_from_config
from routewatch.api.deps import get_report_store, get_routing_client
from routewatch.api.schemas import (
    AlternativesRequest,
    AlternativesResponse,
    AnnotateRoutesRequest,
    RefreshTrafficRequest,
    RouteResponse,
    RoutesResponse,
)
from routewatch.routing.osrm_client import RoutingClientError
from routewatch.settings import get_config
from routewatch.utils.time import utc_now


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/routes/annotate", response_model=RoutesResponse)
def annotate(payload: AnnotateRoutesRequest) -> RoutesResponse:
    spec = annotation_spec_from_config(get_config())
    routes = annotate_routes(payload.routes, get_report_store().snapshot(), utc_now(), spec)
    return RoutesResponse(routes=routes)


@router.post("/routes/refresh-traffic", response_model=RouteResponse)
def refresh_traffic(payload: RefreshTrafficRequest) -> RouteResponse:
    spec = annotation_spec_from_config(get_config())
    route = annotate_route(payload.route, get_report_store().snapshot(), utc_now(), spec)
    return RouteResponse(route=route)


@router.post("/routes/alternatives", response_model=AlternativesResponse)
def route_alternatives(payload: AlternativesRequest) -> AlternativesResponse:
    client = get_routing_client()
    try:
        routes = client.fetch_routes(payload.start, payload.end)
    except RoutingClientError as exc:
        logger.error("Route generation failed: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to generate routes") from exc
    finally:
        client.close()

    spec = annotation_spec_from_config(get_config())
    annotated = annotate_routes(routes, get_report_store().snapshot(), utc_now(), spec)
    logger.info(
        "Route request: %s routes, flagged=%s",
        len(annotated),
        any(r.has_flagged_roads for r in annotated),
    )
    return AlternativesResponse(routes=annotated, start=payload.start, end=payload.end)
