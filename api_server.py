# ========================
# api_server.py
# ========================

"""
FastAPI Server for the Internet Speed Insights Pipeline

Loads speed datasets (upload, URL, bundled sample) and serves the tables,
chart series and summaries the dashboard front-ends render.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, File, UploadFile, HTTPException, Query, Body
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from src.speedtrends.aggregation import SpeedAggregator, speed_band
from src.speedtrends.ingestion import DataAcquisitionError
from src.speedtrends.query import QueryEngine
from src.speedtrends.state import DatasetController
from src.speedtrends.storage import records_to_csv_text, records_to_json_text
from src.utils.config import Config
from src.utils.logging_setup import setup_logging

config = Config()

setup_logging(log_level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


def check_config(settings: Config) -> List[str]:
    """Names of invalid settings, each logged at ERROR."""
    invalid = [name for name, ok in settings.validate_config().items() if not ok]
    for name in invalid:
        logger.error(f"Invalid configuration setting: {name}")
    return invalid


invalid_settings = check_config(config)
if invalid_settings:
    raise RuntimeError(f"Invalid configuration: {', '.join(invalid_settings)}")

app = FastAPI(
    title="Internet Speed Insights API",
    description="Load country internet speed datasets and query aggregates for dashboards",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

controller = DatasetController(config)
aggregator = SpeedAggregator(
    policy=controller.policy,
    year_labels=config.YEAR_LABELS,
    outlier_sigma=config.OUTLIER_SIGMA
)
query_engine = QueryEngine(
    aggregator,
    top_list_limit=config.TOP_LIST_LIMIT,
    region_chart_limit=config.REGION_CHART_LIMIT,
    all_sentinel=config.REGION_ALL_SENTINEL
)

controller.load_sample()

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def _resolve_year(year: Optional[str]) -> str:
    try:
        return query_engine.resolve_year(year)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _load_response(load_stats: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "accepted": load_stats['accepted'],
        "generation": load_stats['generation'],
        "source": load_stats['source'],
        "records_loaded": load_stats['records_loaded'],
        "rows_dropped": load_stats['rows_dropped'],
        "record_count": len(controller)
    }


def _table_row(record: Dict[str, Any], year: str) -> Dict[str, Any]:
    return {
        "country": record['country'],
        "major_area": record['major_area'],
        "region": record['region'],
        "value": aggregator.speed_value(record, year),
        "prior_value": aggregator.speed_value(record, aggregator.prior_year),
        "growth": record['growth'],
        "speeds": record['speeds']
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Internet Speed Insights API",
        "version": "1.0.0",
        "endpoints": {
            "upload": "/upload - Upload a CSV file (replaces the dataset)",
            "load_sample": "/load-sample - Load the bundled sample dataset",
            "load_url": "/load-url - Fetch a CSV file from a URL",
            "records": "/records - Filtered table rows (GET) or add a country (POST)",
            "kpis": "/kpis - Headline figures",
            "region_averages": "/region-averages - Average speed per region",
            "top": "/top - Fastest countries",
            "outliers": "/outliers - Countries beyond two standard deviations",
            "continent": "/query/continent - Continent report",
            "map_data": "/map-data - Country speeds with colour bands",
            "export": "/export - Download records as CSV or JSON",
            "health": "/health - Health check",
            "api_docs": "/docs - API documentation"
        },
        "dataset": controller.describe()
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "record_count": len(controller),
        "generation": controller.generation
    }


@app.post("/upload")
async def upload_file(file: UploadFile = File(...)):
    """
    Upload a CSV file and make it the working dataset.

    Returns:
        dict: Load statistics
    """
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    ticket = controller.begin_load()
    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")

    try:
        text = content.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File is not valid UTF-8 text")

    load_stats = controller.load_text(text, source=file.filename, ticket=ticket)
    logger.info(f"Upload {file.filename}: {load_stats['records_loaded']} records")
    return _load_response(load_stats)


@app.post("/load-sample")
async def load_sample():
    """Replace the dataset with the bundled sample."""
    return _load_response(controller.load_sample())


@app.post("/load-url")
async def load_url(url: str = Query(..., description="HTTP(S) URL of a CSV file")):
    """
    Fetch a CSV file and make it the working dataset. If another load starts
    while this fetch is in flight, this result is discarded.
    """
    if not url.lower().startswith(('http://', 'https://')):
        raise HTTPException(status_code=400, detail="Only http and https URLs are supported")

    loop = asyncio.get_event_loop()
    try:
        load_stats = await loop.run_in_executor(None, controller.load_url, url)
    except DataAcquisitionError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return _load_response(load_stats)


@app.get("/records")
async def list_records(
    year: Optional[str] = Query(None, description="Year label for the value column"),
    continent: Optional[str] = Query(None, description="Substring of the major area"),
    region: Optional[str] = Query(None, description="Exact major area or region, 'all' for no filter"),
    countries: Optional[str] = Query(None, description="Comma-separated country names"),
    search: Optional[str] = Query(None, description="Substring of country or region")
):
    """Table rows for the records matching every given filter."""
    year = _resolve_year(year)
    records = controller.snapshot()
    subset = query_engine.select(records, continent, region, countries, search)
    return {
        "year": year,
        "total_count": len(records),
        "filtered_count": len(subset),
        "records": [_table_row(record, year) for record in subset]
    }


@app.post("/records")
async def add_record(payload: Dict[str, Any] = Body(...)):
    """
    Add one country to the front of the dataset.

    Body: ``{"country": ..., "major_area": ..., "region": ..., "speeds": {"2024": 12.5}}``
    """
    speeds = payload.get('speeds') or {}
    if not isinstance(speeds, dict):
        raise HTTPException(status_code=400, detail="'speeds' must be an object keyed by year")

    record = controller.add_record(
        payload.get('country'),
        payload.get('major_area', ''),
        payload.get('region', ''),
        {str(year): value for year, value in speeds.items()}
    )
    if record is None:
        raise HTTPException(status_code=400, detail="'country' is required")

    return {"record": record, "record_count": len(controller)}


@app.get("/kpis")
async def get_kpis():
    """Average latest-year speed, improved count, mean growth and impact score."""
    return aggregator.kpi_summary(controller.snapshot())


@app.get("/region-averages")
async def get_region_averages(
    year: Optional[str] = Query(None),
    continent: Optional[str] = Query(None, description="Restrict to a major area substring"),
    limit: int = Query(12, ge=1, le=500)
):
    year = _resolve_year(year)
    subset = query_engine.select(controller.snapshot(), continent=continent)
    groups = aggregator.group_averages(subset, year)
    return {"year": year, "groups": groups[:limit], "group_count": len(groups)}


@app.get("/top")
async def get_top(
    n: int = Query(5, ge=1, le=500),
    year: Optional[str] = Query(None)
):
    """Top-N chart series."""
    year = _resolve_year(year)
    return query_engine.top_series(controller.snapshot(), n, year)


@app.get("/outliers")
async def get_outliers(
    year: Optional[str] = Query(None),
    continent: Optional[str] = Query(None)
):
    """Mean, standard deviation and outlier countries for a scope."""
    year = _resolve_year(year)
    subset = query_engine.select(controller.snapshot(), continent=continent)
    return aggregator.outlier_summary(subset, year)


@app.get("/query/continent")
async def query_continent(
    name: str = Query(..., min_length=1, description="Continent (major area) substring"),
    year: Optional[str] = Query(None, description="Year label or 'both' for the latest")
):
    """Continent report; zero matches return count 0, not an error."""
    year = _resolve_year(year)
    return query_engine.continent_report(controller.snapshot(), name, year)


@app.get("/map-data")
async def get_map_data(year: Optional[str] = Query(None)):
    """Lower-cased country name to speed and colour band, for choropleth maps."""
    year = _resolve_year(year)
    speeds = aggregator.country_speed_map(controller.snapshot(), year)
    return {
        "year": year,
        "countries": {
            name: {"value": value, "band": speed_band(value)}
            for name, value in speeds.items()
        }
    }


@app.get("/export")
async def export_records(
    format: str = Query('csv', pattern='^(csv|json)$'),
    continent: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    countries: Optional[str] = Query(None),
    search: Optional[str] = Query(None)
):
    """Download the filtered record set."""
    subset = query_engine.select(controller.snapshot(), continent, region, countries, search)

    if format == 'json':
        content = records_to_json_text(subset)
        media_type = 'application/json'
    else:
        content = records_to_csv_text(subset, config.YEAR_LABELS)
        media_type = 'text/csv'

    logger.info(f"Exporting {len(subset)} records as {format}")
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="internet_speeds.{format}"'}
    )


def start_server(host: str = "0.0.0.0", port: int = config.API_PORT, reload: bool = False):
    """Start the FastAPI server."""
    logger.info(f"Starting Internet Speed Insights API server on {host}:{port}")
    uvicorn.run(
        "api_server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    start_server(reload=True)
