import asyncio
import logging
from typing import Any, Dict, List, Literal, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .analyzer import Analyzer
from .locator import locate_comments
from .logger import setup_logging, timed
from .models import Comment
from .retry import LLMUnavailableError

load_dotenv()
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Redline Reviewer")

_analyzer: Optional[Analyzer] = None


def get_analyzer() -> Analyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = Analyzer()
    return _analyzer


# -----------------------------
# Request bodies
# -----------------------------

class AnalyzeRequest(BaseModel):
    text: str = Field(..., min_length=1)
    systemPrompt: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    topP: Optional[float] = Field(None, ge=0, le=1)


class PRDRequest(BaseModel):
    text: str = Field(..., min_length=1)
    language: Literal["English", "中文"] = "English"


class BotCardRequest(BaseModel):
    text: str = Field(..., min_length=1)


class QuantifyRequest(BaseModel):
    originalContent: str = Field(..., min_length=1)
    analysisResult: Dict[str, Any]


class LocateRequest(BaseModel):
    text: str
    comments: List[Dict[str, Any]] = Field(default_factory=list)


# -----------------------------
# Error mapping
# -----------------------------

@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    msgs = ", ".join(f"{'.'.join(str(p) for p in e.get('loc', ())[1:])}: {e.get('msg')}" for e in exc.errors())
    return JSONResponse({"success": False, "error": f"Invalid request data: {msgs}"}, status_code=400)


@app.exception_handler(LLMUnavailableError)
async def llm_unavailable(request: Request, exc: LLMUnavailableError):
    logger.error("LLM unavailable on %s: %s", request.url.path, exc)
    return JSONResponse({"success": False, "error": str(exc)}, status_code=502)


async def _run(fn, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))


def _ok(data: BaseModel) -> JSONResponse:
    return JSONResponse({"success": True, "data": data.model_dump(mode="json")})


# -----------------------------
# Routes
# -----------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/analyze")
async def analyze(body: AnalyzeRequest, analyzer: Analyzer = Depends(get_analyzer)):
    logger.info("Analyzing document, text length: %d", len(body.text))
    with timed("Analyze"):
        out = await _run(
            analyzer.analyze,
            body.text,
            "legal",
            system_prompt=body.systemPrompt,
            temperature=0.1 if body.temperature is None else body.temperature,
            top_p=0.8 if body.topP is None else body.topP,
        )
    return _ok(out)


@app.post("/analyze-prd")
async def analyze_prd(body: PRDRequest, analyzer: Analyzer = Depends(get_analyzer)):
    variant = "prd_cn" if body.language == "中文" else "prd_en"
    logger.info("Analyzing PRD (%s), text length: %d", variant, len(body.text))
    with timed("Analyze PRD"):
        out = await _run(analyzer.analyze, body.text, variant)
    return _ok(out)


@app.post("/analyze-bot-card")
async def analyze_bot_card(body: BotCardRequest, analyzer: Analyzer = Depends(get_analyzer)):
    logger.info("Analyzing bot card, text length: %d", len(body.text))
    with timed("Analyze bot card"):
        out = await _run(analyzer.analyze, body.text, "bot_card")
    return _ok(out)


@app.post("/quantify-bot-card")
async def quantify_bot_card(body: QuantifyRequest, analyzer: Analyzer = Depends(get_analyzer)):
    logger.info("Quantifying bot card, content length: %d", len(body.originalContent))
    with timed("Quantify bot card"):
        out = await _run(analyzer.quantify, body.originalContent, body.analysisResult)
    return _ok(out)


@app.post("/locate")
def locate(body: LocateRequest):
    comments = [Comment.from_llm(c) for c in body.comments]
    located = locate_comments(comments, body.text)
    return {"success": True, "data": [c.model_dump(mode="json") for c in located]}
