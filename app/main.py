from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Depends, Request
from fastapi.security.api_key import APIKeyHeader
from pydantic import BaseModel
import os, json, logging, time
from typing import Optional, Dict, Any, List

from prometheus_fastapi_instrumentator import Instrumentator
from cmdct.pipeline import detect_copy_move, InvalidConfiguration
from cmdct.preproc import load_pixel_source, PixelSourceError
from cmdct.profiles import load_profile, config_from_profile

API_KEY_NAME = "x-api-key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)

# upper bound on candidates returned in one response
MAX_CANDIDATES = int(os.getenv("CMDCT_MAX_CANDIDATES", "1000"))


def get_api_key(api_key: str = Depends(api_key_header)):
    expected = os.environ.get("API_KEY")
    if not expected:
        # auth disabled when no key is configured
        return None
    if api_key is None:
        raise HTTPException(status_code=401, detail="Missing API key")
    if api_key != expected:
        raise HTTPException(status_code=403, detail="Forbidden")
    return api_key


app = FastAPI(
    title="cmdct",
    version=os.getenv("APP_VERSION", "0.1.0"),
    description="Copy-move forgery candidates from block DCT features.",
)

logger = logging.getLogger("cmdct.app")
handler = logging.StreamHandler()
handler.setFormatter(
    logging.Formatter(
        "%(asctime)s %(levelname)s path=%(path)s method=%(method)s status=%(status)s duration_ms=%(duration_ms)s msg=%(message)s"
    )
)
logger.addHandler(handler)
logger.setLevel(logging.INFO)
logger.propagate = False


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    dur = (time.time() - start) * 1000
    logger.info(
        "request",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": round(dur, 2),
        },
    )
    return response


Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/version")
def version():
    return {
        "version": os.getenv("APP_VERSION", "0.1.0"),
        "git": os.getenv("GIT_SHA", "unknown"),
    }


@app.get("/protected")
def protected(_api_key: str = Depends(get_api_key)):
    return {"ok": True}


class Entry(BaseModel):
    x: int
    y: int
    value: float


class Candidate(BaseModel):
    a: Entry
    b: Entry
    distance: float


class AnalyzeResponse(BaseModel):
    image: str
    profile_id: str
    width: int
    height: int
    blocks: int
    features: int
    candidate_count: int
    candidates: List[Candidate]
    detector: Dict[str, Any]
    metrics: Dict[str, Any]


@app.post("/v1/analyze", response_model=AnalyzeResponse)
async def analyze_endpoint(
    file: UploadFile = File(...),
    profile: str = Form("default"),
    params_json: Optional[str] = Form(None),
    limit: Optional[int] = Form(None),
    _api_key: str = Depends(get_api_key),
):
    try:
        prof = load_profile(profile)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    overrides: Dict[str, Any] = {}
    if params_json:
        try:
            overrides = json.loads(params_json)
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=400, detail=f"params_json is not valid JSON: {e}")
        if not isinstance(overrides, dict):
            raise HTTPException(status_code=400, detail="params_json must be a JSON object")

    try:
        cfg = config_from_profile(prof, overrides)
    except InvalidConfiguration as e:
        raise HTTPException(status_code=400, detail=str(e))
    if callable(cfg.predicate):
        raise HTTPException(status_code=400, detail="predicate must be a name")

    data = await file.read()
    try:
        source = load_pixel_source(data, max_side=cfg.max_side)
    except PixelSourceError as e:
        raise HTTPException(status_code=422, detail=str(e))

    res = detect_copy_move(source, cfg)
    cap = MAX_CANDIDATES if limit is None else max(0, min(int(limit), MAX_CANDIDATES))
    rep = res.to_dict(limit=cap)
    rep["image"] = file.filename or "upload"
    rep["profile_id"] = profile
    rep["detector"] = {
        "block_size": cfg.block_size,
        "threshold": cfg.threshold,
        "step": cfg.step,
        "predicate": cfg.predicate,
        "features": cfg.features,
        "max_side": cfg.max_side,
    }
    return rep


# compatibility with the unversioned endpoint
app.post("/analyze", response_model=AnalyzeResponse)(analyze_endpoint)


@app.get("/v1/health")
def health():
    return {"ok": True}
