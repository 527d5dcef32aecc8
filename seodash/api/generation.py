"""
AI generation endpoints: articles, images, keyword ideas, SEO review, image upload
"""
from fastapi import APIRouter, Depends, File, UploadFile

from seodash.api.deps import get_ai_service, get_upload_service
from seodash.api.errors import http_error
from seodash.models.generation import (
    ArticleGenerationRequest,
    GeneratedArticle,
    ImageGenerationRequest,
    ImageGenerationResponse,
    KeywordSuggestionRequest,
    SeoAiAnalysis,
    SeoAiAnalysisRequest,
)
from seodash.services.ai_content_service import AIContentService
from seodash.services.upload_service import UploadService
from seodash.utils.logger import log

router = APIRouter(prefix="/api", tags=["generation"])


@router.post("/generate-article", response_model=GeneratedArticle)
async def generate_article(
    request: ArticleGenerationRequest,
    ai_service: AIContentService = Depends(get_ai_service),
):
    """
    Write new content for a platform, or rework `existingContent` when given.

    Uses the active system prompt from Airtable, or the built-in default.
    """
    try:
        return await ai_service.generate_article(request)
    except Exception as e:
        log.error(f"Error generating article: {str(e)}")
        raise http_error(e, "Failed to generate content")


@router.post("/generate-image", response_model=ImageGenerationResponse)
async def generate_image(
    request: ImageGenerationRequest,
    ai_service: AIContentService = Depends(get_ai_service),
):
    try:
        url = await ai_service.generate_image(request.content_text, request.content_type.value)
        return ImageGenerationResponse(image_url=url)
    except Exception as e:
        log.error(f"Error generating image: {str(e)}")
        raise http_error(e, "Failed to generate image")


@router.post("/suggest-keywords")
async def suggest_keywords(
    request: KeywordSuggestionRequest,
    ai_service: AIContentService = Depends(get_ai_service),
):
    """Keyword ideas; an empty list when generation is unavailable"""
    keywords = await ai_service.suggest_keywords(request.topic, request.content_type.value)
    return {"keywords": keywords}


@router.post("/seo-ai-analysis", response_model=SeoAiAnalysis)
async def seo_ai_analysis(
    request: SeoAiAnalysisRequest,
    ai_service: AIContentService = Depends(get_ai_service),
):
    """Strengths, weaknesses and prioritised actions for a site's SEO analysis"""
    try:
        return await ai_service.analyze_seo(request.seo_data)
    except Exception as e:
        log.error(f"Error analyzing SEO data for site {request.site_id}: {str(e)}")
        raise http_error(e, "Failed to analyze SEO data")


@router.post("/upload-image")
async def upload_image(
    image: UploadFile = File(...),
    uploads: UploadService = Depends(get_upload_service),
):
    """Store an image for a content item; answers with its /uploads/ path"""
    try:
        content = await image.read()
        path = uploads.save_image(content, image.content_type)
        return {"imageUrl": path}
    except Exception as e:
        log.error(f"Error uploading image {image.filename}: {str(e)}")
        raise http_error(e, "Failed to upload image")
