from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from florida_property_risk.analyzer import PropertyAnalyzer, get_analyzer
from florida_property_risk.errors import InvalidInputError


logger = logging.getLogger("fpr.api")

router = APIRouter(tags=["analysis"])


def analyzer_for(request: Request) -> PropertyAnalyzer:
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        analyzer = get_analyzer()
        request.app.state.analyzer = analyzer
    return analyzer


def require_admin_token(
    analyzer: PropertyAnalyzer = Depends(analyzer_for),
    x_admin_token: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
) -> None:
    expected = analyzer.settings.admin_token
    if not expected:
        return
    presented = x_admin_token
    if not presented and authorization and authorization.lower().startswith("bearer "):
        presented = authorization[7:].strip()
    if not presented:
        raise HTTPException(status_code=403, detail="admin token required")
    if not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("rejected request with invalid admin token")
        raise HTTPException(status_code=403, detail="invalid admin token")


guarded = [Depends(require_admin_token)]


@router.get("/analyze", dependencies=guarded)
async def analyze(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    county: Optional[str] = None,
    parcel_id: Optional[str] = None,
    analyzer: PropertyAnalyzer = Depends(analyzer_for),
):
    try:
        report = await analyzer.analyze(lat, lng, county, parcel_id)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return report.to_dict()


@router.get("/flood", dependencies=guarded)
async def flood(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    analyzer: PropertyAnalyzer = Depends(analyzer_for),
):
    try:
        result = await analyzer.get_flood_zone(lat, lng)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return result.to_dict()


@router.get("/wetlands", dependencies=guarded)
async def wetlands(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    analyzer: PropertyAnalyzer = Depends(analyzer_for),
):
    try:
        result = await analyzer.get_wetlands(lat, lng)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return result.to_dict()


@router.get("/land-use", dependencies=guarded)
async def land_use(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    parcel_id: Optional[str] = None,
    analyzer: PropertyAnalyzer = Depends(analyzer_for),
):
    try:
        result = await analyzer.get_land_use(lat, lng, parcel_id)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return result.to_dict()


@router.get("/zoning", dependencies=guarded)
async def zoning(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    county: Optional[str] = None,
    analyzer: PropertyAnalyzer = Depends(analyzer_for),
):
    try:
        result = await analyzer.get_zoning(county, lat, lng)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return result.to_dict()


@router.get("/usage", dependencies=guarded)
def usage(analyzer: PropertyAnalyzer = Depends(analyzer_for)):
    return {
        "usage": analyzer.usage.snapshot(),
        "cache": analyzer.cache.stats(),
    }
