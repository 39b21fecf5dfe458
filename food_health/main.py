"""Main FastAPI application."""

import asyncio
import logging
import sys
import time

import openai
from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from food_health.config import ALLOW_ALL_ORIGINS, CORS_ORIGINS
from food_health.errors import (
    AggregationError,
    AnalysisError,
    AnalysisTimeoutError,
    InputError,
    ParseError,
)
from food_health.image_preprocess import prepare_image
from food_health.pipeline import AnalysisPipeline, get_default_pipeline
from food_health.utils import elapsed_ms

# -----------------------------------
# App initialization
# -----------------------------------

app = FastAPI()

logging.basicConfig(
    level=logging.INFO,
    stream=sys.stdout,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

# -----------------------------------
# CORS
# -----------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=not ALLOW_ALL_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_pipeline() -> AnalysisPipeline:
    return get_default_pipeline()


# -----------------------------------
# Service endpoints
# -----------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


# -----------------------------------
# /analyze: dish, nutrition, health rating, alternatives
# -----------------------------------

@app.post("/analyze")
async def analyze_photo(
    image: UploadFile = File(None),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    if not image:
        raise HTTPException(422, "Image field is required")

    total_start = time.time()
    logging.info(f"[PIPELINE] Starting /analyze endpoint for file: {image.filename}")

    try:
        img_bytes = await image.read()
        raw_image = await asyncio.to_thread(prepare_image, img_bytes, image.content_type)
        preprocess_ms = elapsed_ms(total_start, time.time())

        processing_times = {"preprocess_ms": preprocess_ms}
        result = await pipeline.run(raw_image, processing_times)
        processing_times["total_ms"] = elapsed_ms(total_start, time.time())
    except InputError as e:
        logging.warning("Rejected upload %s: %s", image.filename, e)
        raise HTTPException(422, str(e))
    except ParseError as e:
        logging.warning("Unparsable nutrition text: %r", e.text)
        raise HTTPException(422, f"Analysis error: {e}")
    except (AnalysisError, AggregationError) as e:
        logging.warning("Analysis failed for %s: %s", image.filename, e)
        raise HTTPException(422, f"Analysis error: {e}")
    except AnalysisTimeoutError as e:
        raise HTTPException(504, str(e))
    except openai.APIError as e:
        logging.exception("AI provider error in /analyze")
        raise HTTPException(502, f"AI service error: {e}")

    logging.info(
        "[PIPELINE] /analyze completed successfully, total time: %sms",
        processing_times["total_ms"],
    )
    response = result.model_dump()
    response["processing_times"] = processing_times
    return response
