import base64
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from pydantic import ValidationError

from eyeris.api.v1.schemas.schemas import AnalysisData, ApiResponse
from eyeris.core.config import get_settings
from eyeris.core.dependencies import ProcessorPool, get_processor_pool
from eyeris.core.logging import LoggerRegistry
from eyeris.domain.prompt_spec import PromptSpec

router = APIRouter()
logger = LoggerRegistry.get_api_logger("analyze")


@router.post("", response_model=ApiResponse[AnalysisData])
async def analyze_image(
    request: Request,
    image: UploadFile = File(...),
    provider: Optional[str] = Query(None, description="Backend to use: 'ollama' or 'openai'."),
    model: Optional[str] = Query(None, description="Overrides the backend's default model."),
    format: Optional[str] = Query(None, description="Output format, e.g. 'json' or 'concise'."),
    category: Optional[str] = Query(None, description="Subject for the category_specific format."),
    platform: Optional[str] = Query(None, description="Platform for platform_specific or screenshot content."),
    traits: Optional[str] = Query(None, description="Comma separated aspects for the custom format."),
    content_category: Optional[str] = Query(None, description="Known content category, e.g. 'receipt'."),
    features: Optional[str] = Query(None, description="Comma separated analysis toggles, e.g. 'extract_text,color_analysis'."),
    custom_traits: Optional[str] = Query(None, description="Comma separated traits to evaluate explicitly."),
    include_thumbnail: bool = Query(False),
    pool: ProcessorPool = Depends(get_processor_pool),
):
    """
    Analyzes one uploaded image and returns the provider's answer with token usage.
    """
    try:
        spec = PromptSpec.from_options(
            format=format or get_settings().DEFAULT_FORMAT,
            category=category,
            platform=platform,
            traits=traits,
            content_category=content_category,
            features=features,
            custom_traits=custom_traits,
        )
        processor = await pool.get(provider, model)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    raw = await image.read()
    if not raw:
        raise HTTPException(status_code=400, detail="No image provided")

    async with request.app.state.request_limiter:
        result = await processor.process(raw, spec)

    logger.info("Successfully processed image", provider=result.provider, model=result.model)

    thumbnail_b64 = None
    if include_thumbnail and result.thumbnail is not None:
        thumbnail_b64 = base64.b64encode(result.thumbnail).decode("utf-8")

    return ApiResponse[AnalysisData](
        success=True,
        message="Analysis completed successfully",
        data=AnalysisData(
            analysis=result.analysis,
            token_usage=result.token_usage,
            provider=result.provider,
            model=result.model,
            thumbnail_b64=thumbnail_b64,
        ),
    )
