from fastapi import FastAPI, Depends, Query, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional

from wordvec_engineering.application.settings import get_settings, Settings
from wordvec_engineering.application.log_setup import setup_logging
from wordvec_engineering.application.services.outcome import Outcome, Status
from wordvec_engineering.application.services.word_vec_service import WordVecService
from loguru import logger

# Configure logging once
setup_logging()

app = FastAPI(title="Word Vector Lookup (VecStore + VecSimTable)")

# --- Dependencies ---
def settings_dep() -> Settings:
    return get_settings()

# Build a single WordVecService instance for the app lifetime
_service: WordVecService | None = None
def service_dep(settings: Settings = Depends(settings_dep)) -> WordVecService:
    global _service
    # Lazy initialization; the vector file is read on first request
    if _service is None:
        if not settings.vector_file:
            raise HTTPException(status_code=503, detail="No vector_file configured")
        _service = WordVecService.build(settings)
    return _service


_STATUS_CODES = {
    Status.NOT_FOUND: 404,
    Status.DIMENSION_MISMATCH: 422,
    Status.DEGENERATE_QUERY: 400,
}

def unwrap(outcome: Outcome):
    """Hand out the value of a FOUND outcome, turn anything else into an HTTP error."""
    if outcome.ok:
        return outcome.value
    logger.debug("Query failed: {} ({})", outcome.status.value, outcome.detail)
    raise HTTPException(status_code=_STATUS_CODES[outcome.status], detail=outcome.detail)


def _neighbors_payload(hits) -> List[dict]:
    return [
        {"word": entry.word, "distance": round(dist, 6)}
        for (entry, dist) in hits
    ]


# --- Meta ---
@app.get("/", tags=["meta"])
def root(settings: Settings = Depends(settings_dep)):
    return {
        "ok": True,
        "app_name": settings.app_name,
        "environment": settings.app_env,
        "debug": settings.debug,
    }

@app.get("/info", tags=["meta"])
def info(svc: WordVecService = Depends(service_dep)):
    return svc.info()


# --- VecStore endpoints ---
@app.get("/vectors/{word}", tags=["store"])
def get_vector(word: str, svc: WordVecService = Depends(service_dep)):
    vec = unwrap(svc.store.get(word))
    return {"word": word, "vector": vec.tolist()}

@app.get("/similarity", tags=["store"])
def similarity(
    w0: str,
    w1: str,
    mode: str = Query("", description="'eucl_dist' (or similar) for Euclidean distance, cosine otherwise"),
    svc: WordVecService = Depends(service_dep),
):
    return {"w0": w0, "w1": w1, "score": unwrap(svc.store.similarity(w0, w1, mode))}

@app.get("/closest/{word}", tags=["store"])
def closest(word: str, svc: WordVecService = Depends(service_dep)):
    return unwrap(svc.store.closest(word)).as_dict()

@app.get("/farthest/{word}", tags=["store"])
def farthest(word: str, svc: WordVecService = Depends(service_dep)):
    return unwrap(svc.store.farthest(word)).as_dict()

@app.get("/neighbors/{word}", tags=["store"])
def neighbors(
    word: str,
    k: Optional[int] = Query(None, ge=1, le=1000),
    farthest: bool = False,
    svc: WordVecService = Depends(service_dep),
):
    """k closest (or most distant) words to a stored word, the word itself excluded."""
    k = k or svc.settings.default_k
    return _neighbors_payload(unwrap(svc.store.neighbors(word, k=k, farthest=farthest)))

class VectorQuery(BaseModel):
    vector: List[float]
    k: int = Field(1, ge=1, le=1000)
    exclude_word: str = ""
    farthest: bool = False

@app.post("/neighbors", tags=["store"])
def neighbors_of_vector(body: VectorQuery, svc: WordVecService = Depends(service_dep)):
    hits = svc.store.neighbors(body.vector, k=body.k, exclude_word=body.exclude_word, farthest=body.farthest)
    return _neighbors_payload(unwrap(hits))

@app.get("/arithmetic/{op}", tags=["store"])
def arithmetic(
    op: str,
    words: List[str] = Query(..., description="add/subtract take two words, average one or more"),
    svc: WordVecService = Depends(service_dep),
):
    if op == "average":
        result = svc.store.average(*words)
    elif op in ("add", "subtract"):
        if len(words) != 2:
            raise HTTPException(status_code=400, detail=f"'{op}' takes exactly two words")
        result = svc.store.add(*words) if op == "add" else svc.store.subtract(*words)
    else:
        raise HTTPException(status_code=404, detail=f"Unknown operation '{op}'")
    return {"op": op, "words": words, "vector": unwrap(result).tolist()}


# --- VecSimTable endpoints ---
@app.get("/table/vectors/{word}", tags=["table"])
def table_vector(word: str, svc: WordVecService = Depends(service_dep)):
    vec = unwrap(svc.table.get_vector(word))
    return {"word": word, "vector": vec.tolist()}

@app.get("/table/similarity", tags=["table"])
def table_similarity(w0: str, w1: str, mode: str = "", svc: WordVecService = Depends(service_dep)):
    return {"w0": w0, "w1": w1, "score": unwrap(svc.table.similarity(w0, w1, mode))}

@app.get("/table/pairs/similar", tags=["table"])
def similar_pairs(
    w0: Optional[str] = None,
    w1: Optional[str] = None,
    value: Optional[float] = None,
    mode: str = "",
    radius: Optional[float] = Query(None, ge=0),
    svc: WordVecService = Depends(service_dep),
):
    """Pairs whose score lies within `radius` of a word pair's score (w0 & w1) or of a raw `value`."""
    radius = svc.settings.default_radius if radius is None else radius
    if value is not None:
        pairs = svc.table.similar_pairs_near(value, mode, radius)
    elif w0 is not None and w1 is not None:
        pairs = svc.table.similar_pairs(w0, w1, mode, radius)
    else:
        raise HTTPException(status_code=400, detail="Give either w0 and w1, or value")
    return [p.as_dict() for p in unwrap(pairs)]

@app.get("/table/pairs/most-similar", tags=["table"])
def most_similar_pairs(
    w0: Optional[str] = None,
    w1: Optional[str] = None,
    value: Optional[float] = None,
    mode: str = "",
    k: Optional[int] = Query(None, ge=1, le=1000),
    svc: WordVecService = Depends(service_dep),
):
    k = k or svc.settings.default_k
    if value is not None:
        pairs = svc.table.most_similar_pairs_near(value, mode, k)
    elif w0 is not None and w1 is not None:
        pairs = svc.table.most_similar_pairs(w0, w1, mode, k)
    else:
        raise HTTPException(status_code=400, detail="Give either w0 and w1, or value")
    return [p.as_dict() for p in unwrap(pairs)]
