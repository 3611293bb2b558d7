from typing import Optional

from fastapi import FastAPI, Request

from florida_property_risk.analyzer import PropertyAnalyzer
from florida_property_risk.county_links import list_counties


def health():
    return {"status": "ok"}


def counties(analyzer: Optional[PropertyAnalyzer] = None):
    configured = set()
    if analyzer is not None:
        configured = {cfg.slug for cfg in analyzer.registry.counties()}
    return {
        "counties": [
            dict(entry, zoningConfigured=entry["slug"] in configured)
            for entry in list_counties()
        ]
    }


def create_app(analyzer: Optional[PropertyAnalyzer] = None) -> FastAPI:
    from florida_property_risk.api.routes.analysis import analyzer_for, router

    app = FastAPI(title="Florida property risk")
    app.state.analyzer = analyzer
    app.include_router(router, prefix="/api")

    @app.get("/health")
    def health_route():
        return health()

    @app.get("/counties")
    def counties_route(request: Request):
        return counties(analyzer_for(request))

    return app


app = create_app()
