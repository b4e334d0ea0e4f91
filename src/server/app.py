from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from coda_framer.framer_client import DEFAULT_API_BASE, FramerClient, FramerConfig
from coda_framer.io import MappingInputError, parse_json_array, parse_json_param
from coda_framer.mapping import merge_fields_with_existing_fields
from coda_framer.normalize import build_reference_map, normalize_columns, normalize_rows
from coda_framer.sync import CollectionNotFoundError, list_collections, list_item_ids, publish_project, push_rows
from coda_framer.transform import transform
from . import settings as app_settings


ROOT = Path(__file__).resolve().parents[2]
SETTINGS_FILE = Path(os.getenv("CODA_FRAMER_SETTINGS", str(ROOT / "data" / "settings.json")))

app = FastAPI(title="Coda → Framer API", version="0.1.0")
app_settings.init_settings(SETTINGS_FILE)


@app.exception_handler(MappingInputError)
async def _mapping_input_error(request: Request, exc: MappingInputError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(CollectionNotFoundError)
async def _collection_not_found(request: Request, exc: CollectionNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(requests.HTTPError)
async def _framer_http_error(request: Request, exc: requests.HTTPError):
    return JSONResponse(status_code=502, content={"detail": f"Framer API error: {exc}"})


JsonArray = Union[List[Any], str]


class MapRequest(BaseModel):
    columns: JsonArray
    rows: JsonArray
    slugFieldId: str
    referenceMap: Optional[JsonArray] = None
    existingFields: Optional[JsonArray] = None
    use12HourTime: Optional[bool] = None


class PushTableRequest(BaseModel):
    collectionName: str
    slugFieldId: str
    columns: JsonArray
    rows: JsonArray
    referenceMap: Optional[JsonArray] = None
    pruneMissing: Optional[bool] = None
    use12HourTime: Optional[bool] = None


class PushRowRequest(BaseModel):
    collectionName: str
    slugFieldId: str
    columns: JsonArray
    row: Any
    referenceMap: Optional[JsonArray] = None
    use12HourTime: Optional[bool] = None


class SettingsUpdate(BaseModel):
    framer_project_url: Optional[str] = None
    framer_api_key: Optional[str] = None
    framer_api_base: Optional[str] = None
    use_12_hour_time_default: Optional[bool] = None
    prune_missing_default: Optional[bool] = None


def _array(value: Optional[JsonArray], label: str) -> Optional[List[Any]]:
    # Parameters may arrive as decoded arrays or as JSON text
    if value is None:
        return None
    if isinstance(value, str):
        return parse_json_array(value, label)
    return value


def _flag(value: Optional[bool], setting: str) -> bool:
    if value is not None:
        return value
    return bool(app_settings.get_settings().get(setting))


def _get_framer_cfg() -> FramerConfig:
    # Prefer settings.json; fallback to env vars
    s = app_settings.get_settings()
    project_url = (s.get("framer_project_url") or os.getenv("FRAMER_PROJECT_URL", "")).strip()
    api_key = (s.get("framer_api_key") or os.getenv("FRAMER_API_KEY", "")).strip()
    api_base = (s.get("framer_api_base") or os.getenv("FRAMER_API_BASE", "")).strip() or DEFAULT_API_BASE
    if not project_url or not api_key:
        raise HTTPException(500, "Framer credentials missing. Set them in Settings or as environment variables.")
    return FramerConfig(project_url=project_url, api_key=api_key, api_base=api_base)


def get_client() -> FramerClient:
    return FramerClient(_get_framer_cfg())


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/settings")
def read_settings():
    s = dict(app_settings.get_settings())
    s["framer_api_key"] = "***" if s.get("framer_api_key") else ""
    return s


@app.put("/settings")
def update_settings(req: SettingsUpdate):
    s = app_settings.get_settings()
    s.update({k: v for k, v in req.model_dump().items() if v is not None})
    app_settings.save_settings(s)
    return read_settings()


@app.post("/map")
def map_rows(req: MapRequest) -> Dict:
    result = transform(
        _array(req.columns, "columns"),
        _array(req.rows, "rows"),
        req.slugFieldId,
        reference_entries=_array(req.referenceMap, "referenceMap"),
        use_12_hour_time=_flag(req.use12HourTime, "use_12_hour_time_default"),
    )
    existing = _array(req.existingFields, "existingFields")
    if existing is not None:
        result.fields = merge_fields_with_existing_fields(
            result.fields,
            [f for f in existing if isinstance(f, dict)],
            result.warnings,
        )
    return result.to_dict()


@app.get("/collections")
def get_collections(client: FramerClient = Depends(get_client)):
    return {"collections": [c.to_dict() for c in list_collections(client)]}


@app.get("/collections/{collection_id}/items")
def get_collection_items(collection_id: str, client: FramerClient = Depends(get_client)):
    return {"collectionId": collection_id, "itemIds": list_item_ids(client, collection_id)}


@app.post("/push/row")
def push_row(req: PushRowRequest, client: FramerClient = Depends(get_client)) -> Dict:
    row = parse_json_param(req.row, "row") if isinstance(req.row, str) else req.row
    result = push_rows(
        client,
        req.collectionName,
        req.slugFieldId,
        normalize_columns(_array(req.columns, "columns")),
        normalize_rows([row]),
        reference_map=build_reference_map(_array(req.referenceMap, "referenceMap")),
        use_12_hour_time=_flag(req.use12HourTime, "use_12_hour_time_default"),
        single_row=True,
    )
    return result.to_dict()


@app.post("/push/table")
def push_table(req: PushTableRequest, client: FramerClient = Depends(get_client)) -> Dict:
    result = push_rows(
        client,
        req.collectionName,
        req.slugFieldId,
        normalize_columns(_array(req.columns, "columns")),
        normalize_rows(_array(req.rows, "rows")),
        reference_map=build_reference_map(_array(req.referenceMap, "referenceMap")),
        use_12_hour_time=_flag(req.use12HourTime, "use_12_hour_time_default"),
        prune_missing=_flag(req.pruneMissing, "prune_missing_default"),
    )
    return result.to_dict()


@app.post("/publish")
def publish(client: FramerClient = Depends(get_client)) -> Dict:
    return publish_project(client).to_dict()


def main() -> None:
    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
