"""Application entry point for MathML Extractor: FastAPI service and CLI."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import settings
from core.errors import RendererUnavailableError
from core.logger import init_logging, logger
from services.math.batch_assembler import (
    AssemblyResult,
    assemble,
    assemble_documents,
    assemble_report,
)
from services.math.mathml_normalizer import SpanFailure
from services.math.renderer import MathRenderer, get_renderer


class MarkdownRequest(BaseModel):
    markdown: str


class NamedDocument(BaseModel):
    name: str = "page"
    markdown: str


class BatchRequest(BaseModel):
    documents: list[NamedDocument]


def _failure_payload(failure: SpanFailure) -> dict[str, object]:
    return {
        "index": failure.source_order,
        "latex": failure.raw_latex,
        "kind": failure.kind,
        "message": failure.message,
    }


def _log_failures(result: AssemblyResult) -> None:
    for failure in result.failures:
        logger.warning("Skipping math %s", failure.describe())


def _result_payload(result: AssemblyResult) -> dict[str, object]:
    return {
        "mathml": result.output,
        "count": len(result.fragments),
        "found": result.found,
        "failures": [_failure_payload(f) for f in result.failures],
    }


def create_app(renderer: Optional[MathRenderer] = None) -> FastAPI:
    """Create FastAPI app exposing the markdown → MathML pipeline."""
    app = FastAPI(title="MathML Extractor", version="0.1.0")
    renderer_name = settings.renderer if renderer is None else type(renderer).__name__
    math_renderer = renderer if renderer is not None else get_renderer(settings.renderer)

    @app.on_event("startup")
    async def startup_event() -> None:
        init_logging()
        logger.info("FastAPI service started (renderer=%s)", renderer_name)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "renderer": renderer_name}

    @app.post("/mathml")
    def mathml(request: MarkdownRequest):
        """Extract clean MathML from one markdown document."""
        try:
            result = assemble_report(
                request.markdown, math_renderer, max_workers=settings.max_workers
            )
        except RendererUnavailableError as exc:
            logger.exception("MathML generation failed: %s", exc)
            return JSONResponse({"status": "error", "message": str(exc)}, status_code=500)
        _log_failures(result)
        return {"status": "success", **_result_payload(result)}

    @app.post("/mathml/batch")
    def mathml_batch(request: BatchRequest):
        """Extract clean MathML from several documents, one result per document."""
        try:
            results = assemble_documents(
                (doc.markdown for doc in request.documents),
                math_renderer,
                max_workers=settings.max_workers,
            )
        except RendererUnavailableError as exc:
            logger.exception("Batch MathML generation failed: %s", exc)
            return JSONResponse({"status": "error", "message": str(exc)}, status_code=500)
        for result in results:
            _log_failures(result)
        return {
            "status": "success",
            "results": [
                {"name": doc.name, **_result_payload(result)}
                for doc, result in zip(request.documents, results)
            ],
        }

    return app


def convert_file(source: str, renderer: Optional[MathRenderer] = None) -> str:
    """Read markdown from ``source`` (``-`` for stdin) and return its MathML."""
    if source == "-":
        text = sys.stdin.read()
    else:
        text = Path(source).read_text(encoding="utf-8")
    math_renderer = renderer if renderer is not None else get_renderer(settings.renderer)
    return assemble(text, math_renderer, max_workers=settings.max_workers)


def main() -> None:
    """Entry point for CLI; serves the API or converts a markdown file."""
    init_logging()

    mode: Optional[str] = sys.argv[1] if len(sys.argv) > 1 else None

    if mode == "api":
        logger.info("Starting FastAPI server at %s:%s", settings.host, settings.port)
        uvicorn.run(create_app(), host=settings.host, port=settings.port)
    elif mode == "convert" and len(sys.argv) > 2:
        try:
            print(convert_file(sys.argv[2]))
        except RendererUnavailableError as exc:
            logger.error("Cannot convert %s: %s", sys.argv[2], exc)
            sys.exit(1)
    else:
        print("Usage: mathml-extractor api | convert <markdown-file|->", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
