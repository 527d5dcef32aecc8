"""
AI Content Service
Generates editorial copy with Claude and illustrations with DALL-E.

The system instruction sent with every text request is data: operators
edit it in the Airtable prompts table. When no prompt is active (or the
table can't be read) DEFAULT_SYSTEM_PROMPT is used instead.
"""
import json
from typing import Any, Dict, List, Optional, Tuple

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from seodash.config import get_settings
from seodash.exceptions import GenerationError
from seodash.models.generation import (
    ArticleGenerationRequest,
    GeneratedArticle,
    SeoAiAnalysis,
    SeoAiRecommendation,
)
from seodash.services.seo_normalizer import PRIORITY_ALIASES
from seodash.utils.logger import log

DEFAULT_SYSTEM_PROMPT = (
    "Tu es un expert en marketing digital et en rédaction SEO. Tu rédiges des contenus "
    "en français, adaptés à chaque plateforme (newsletter, réseaux sociaux, blog, fiche "
    "Google My Business), optimisés pour les mots-clés fournis, avec un ton engageant et "
    "un appel à l'action clair. Tu réponds uniquement en JSON valide."
)

DEFAULT_OUTPUT_STRUCTURE = json.dumps(
    {
        "title": "Titre accrocheur du contenu",
        "content": "Contenu complet prêt à publier",
        "suggestions": ["Suggestion d'amélioration 1", "Suggestion d'amélioration 2"],
    },
    ensure_ascii=False,
    indent=2,
)

PLATFORM_GUIDELINES = {
    "newsletter": "email de 300 à 500 mots avec objet, introduction, sections et appel à l'action",
    "tiktok": "script vidéo court (30-60 s) avec accroche dans les 3 premières secondes et hashtags",
    "instagram": "légende de 150 mots maximum, emojis, 5 à 10 hashtags pertinents",
    "xtwitter": "post de 280 caractères maximum, percutant, 1 à 2 hashtags",
    "youtube": "description de vidéo avec résumé, chapitres et liens",
    "facebook": "post conversationnel de 100 à 250 mots qui invite au commentaire",
    "blog": "article structuré de 800 à 1200 mots avec titres H2/H3 et méta-description",
    "google-my-business": "post local de 150 à 300 mots avec offre ou actualité et appel à l'action",
    "pinterest": "description d'épingle de 100 à 200 mots riche en mots-clés",
}

IMAGE_PROMPT_TEMPLATES = {
    "instagram": (
        "Square Instagram post image, vivid saturated colors, modern lifestyle photography, "
        "centered composition, no text. Subject: {subject}"
    ),
    "tiktok": (
        "Vertical-feeling dynamic scene for a TikTok video cover, energetic motion, bold "
        "contrast, trendy youthful style, no text. Subject: {subject}"
    ),
    "pinterest": (
        "Aesthetic Pinterest pin image, soft natural light, styled flat lay or interior, "
        "inspirational mood, no text. Subject: {subject}"
    ),
    "facebook": (
        "Friendly, warm social media image for a Facebook post, authentic people and "
        "situations, natural colors, no text. Subject: {subject}"
    ),
    "xtwitter": (
        "Clean, striking illustration for an X (Twitter) post, simple composition with one "
        "strong focal point, no text. Subject: {subject}"
    ),
    "youtube": (
        "High-impact YouTube thumbnail style image, expressive subject, strong lighting and "
        "depth, bold colors, no text. Subject: {subject}"
    ),
    "blog": (
        "Wide editorial banner image for a blog article header, professional magazine "
        "photography, balanced negative space, no text. Subject: {subject}"
    ),
    "newsletter": (
        "Elegant header image for an email newsletter, clean minimal layout, brand-friendly "
        "soft palette, no text. Subject: {subject}"
    ),
    "google-my-business": (
        "Welcoming photo of a local business storefront or service, daylight, trustworthy "
        "and professional, no text. Subject: {subject}"
    ),
}

DEFAULT_IMAGE_TEMPLATE = (
    "Professional high-quality marketing image, modern clean style, no text, no "
    "watermark. Subject: {subject}"
)

MAX_IMAGE_SUBJECT_CHARS = 600
MAX_KEYWORD_SUGGESTIONS = 10
MAX_SEO_DATA_CHARS = 12000

SEO_ANALYSIS_STRUCTURE = json.dumps(
    {
        "overallScore": 72,
        "summary": "Synthèse en 2 à 3 phrases",
        "strengths": ["Point fort 1"],
        "weaknesses": ["Point faible 1"],
        "recommendations": [
            {
                "priority": "high",
                "category": "Technique",
                "title": "Titre de la recommandation",
                "description": "Ce qu'il faut changer et pourquoi",
                "impact": "Effet attendu sur le référencement",
                "actionSteps": ["Étape 1", "Étape 2"],
                "estimatedImprovement": "+10 % de trafic organique",
            }
        ],
    },
    ensure_ascii=False,
    indent=2,
)


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull a JSON object out of a model answer.

    Tolerates markdown fences and prose around the object.
    """
    if not text:
        return None

    text = text.strip()
    if text.startswith("```"):
        text = text.replace("```json", "").replace("```", "").strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None

    json_str = (
        text[start:end + 1]
        .replace("“", '"')
        .replace("”", '"')
    )
    try:
        parsed = json.loads(json_str)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _score(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return default
    return max(0, min(100, score))


class AIContentService:
    """
    Text and image generation for the editorial calendar
    """

    def __init__(self, record_store=None, text_client=None, image_client=None):
        self.settings = get_settings()
        self.record_store = record_store

        if text_client is not None:
            self.text_client = text_client
        elif self.settings.anthropic_api_key:
            self.text_client = AsyncAnthropic(
                api_key=self.settings.anthropic_api_key,
                timeout=self.settings.generation_timeout_seconds,
                max_retries=self.settings.generation_max_retries,
            )
            log.info("AI content service initialized with Claude")
        else:
            log.info("Text generation disabled (no ANTHROPIC_API_KEY)")
            self.text_client = None

        if image_client is not None:
            self.image_client = image_client
        elif self.settings.openai_api_key:
            self.image_client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.generation_timeout_seconds,
                max_retries=self.settings.generation_max_retries,
            )
        else:
            log.info("Image generation disabled (no OPENAI_API_KEY)")
            self.image_client = None

    def is_available(self) -> Dict[str, bool]:
        return {"text": self.text_client is not None, "images": self.image_client is not None}

    async def resolve_system_prompt(self) -> Tuple[str, Optional[str]]:
        """
        Return (instruction, output structure) for text requests.

        Active prompt from the record store first, DEFAULT_SYSTEM_PROMPT
        otherwise.
        """
        if self.record_store is None:
            return DEFAULT_SYSTEM_PROMPT, None

        try:
            prompt = await self.record_store.get_active_prompt()
        except Exception as e:
            log.warning(f"Could not load active system prompt, using default: {str(e)}")
            return DEFAULT_SYSTEM_PROMPT, None

        if prompt is None or not prompt.prompt_system.strip():
            log.info("No active system prompt configured, using default")
            return DEFAULT_SYSTEM_PROMPT, None

        log.debug(f"Using system prompt {prompt.id} ({prompt.nom or 'unnamed'})")
        return prompt.prompt_system, prompt.structure_sortie

    async def _complete(self, system: str, prompt: str) -> str:
        if self.text_client is None:
            raise GenerationError("Text generation is not configured (ANTHROPIC_API_KEY missing)")

        response = await self.text_client.messages.create(
            model=self.settings.llm_model,
            max_tokens=self.settings.llm_max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(getattr(block, "text", "") for block in response.content)

    @staticmethod
    def _article_prompt(request: ArticleGenerationRequest, structure: str) -> str:
        content_type = request.content_type.value
        guideline = PLATFORM_GUIDELINES.get(content_type, "contenu adapté à la plateforme")
        lines = []

        if request.is_regeneration:
            lines.append(f"Améliore et réécris le contenu {content_type} suivant :")
            lines.append(f'"""\n{request.existing_content.strip()}\n"""')
        else:
            lines.append(f"Rédige un nouveau contenu de type {content_type}.")

        lines.append(f"Format attendu : {guideline}.")
        lines.append(f"Mots-clés à intégrer : {', '.join(request.keywords)}.")
        if request.topic:
            lines.append(f"Sujet : {request.topic}.")
        if request.target_audience:
            lines.append(f"Public cible : {request.target_audience}.")
        if request.tone:
            lines.append(f"Ton : {request.tone}.")

        lines.append("")
        lines.append("Réponds uniquement avec un objet JSON respectant cette structure :")
        lines.append(structure)
        return "\n".join(lines)

    async def generate_article(self, request: ArticleGenerationRequest) -> GeneratedArticle:
        """
        Generate (or regenerate, when existing_content is given) one piece
        of content.

        A partially malformed model answer never fails the call; each
        field falls back on its own.
        """
        system, structure = await self.resolve_system_prompt()
        prompt = self._article_prompt(request, structure or DEFAULT_OUTPUT_STRUCTURE)

        try:
            text = await self._complete(system, prompt)
        except GenerationError:
            raise
        except Exception as e:
            log.error(f"Article generation failed: {str(e)}")
            raise GenerationError(f"Article generation failed: {str(e)}") from e

        data = extract_json(text)
        if data is None:
            log.warning("Model answer contained no JSON object; using raw text as content")
            data = {"content": text.strip()}

        suggestions = data.get("suggestions")
        if not isinstance(suggestions, list):
            suggestions = []

        article = GeneratedArticle(
            title=str(data.get("title") or f"{request.content_type.value.capitalize()} - {request.keywords[0]}"),
            content=str(data.get("content") or request.existing_content or ""),
            suggestions=[str(item) for item in suggestions if item],
        )
        log.info(
            f"Generated {request.content_type.value} content "
            f"({'regeneration' if request.is_regeneration else 'new'}, {len(article.content)} chars)"
        )
        return article

    async def suggest_keywords(self, topic: str, content_type: str) -> List[str]:
        """Keyword ideas for a topic; empty list on any failure."""
        try:
            system, _ = await self.resolve_system_prompt()
            prompt = (
                f"Propose jusqu'à {MAX_KEYWORD_SUGGESTIONS} mots-clés SEO pertinents pour un contenu "
                f"{content_type} sur le sujet : {topic}.\n"
                'Réponds uniquement avec un objet JSON de la forme {"keywords": ["mot-clé 1", "mot-clé 2"]}.'
            )
            data = extract_json(await self._complete(system, prompt)) or {}
            keywords = data.get("keywords")
            if not isinstance(keywords, list):
                return []
            return [str(keyword).strip() for keyword in keywords if str(keyword).strip()][:MAX_KEYWORD_SUGGESTIONS]
        except Exception as e:
            log.warning(f"Keyword suggestion failed for '{topic}': {str(e)}")
            return []

    @staticmethod
    def _seo_analysis_prompt(seo_data: Any) -> str:
        serialized = json.dumps(seo_data, ensure_ascii=False, default=str)
        if len(serialized) > MAX_SEO_DATA_CHARS:
            serialized = serialized[:MAX_SEO_DATA_CHARS] + "…"
        return "\n".join([
            "Analyse les données SEO suivantes d'un site web et propose des recommandations "
            "concrètes et priorisées pour améliorer son référencement.",
            f'"""\n{serialized}\n"""',
            "",
            "Réponds uniquement avec un objet JSON respectant cette structure :",
            SEO_ANALYSIS_STRUCTURE,
        ])

    @staticmethod
    def _seo_recommendation(raw: Any) -> Optional[SeoAiRecommendation]:
        if not isinstance(raw, dict) or not str(raw.get("title") or "").strip():
            return None
        priority = PRIORITY_ALIASES.get(str(raw.get("priority") or "").strip().lower(), "medium")
        return SeoAiRecommendation(
            priority=priority,
            category=str(raw.get("category") or "Général"),
            title=str(raw["title"]).strip(),
            description=str(raw.get("description") or ""),
            impact=str(raw.get("impact") or ""),
            action_steps=_string_list(raw.get("actionSteps")),
            estimated_improvement=str(raw.get("estimatedImprovement") or ""),
        )

    async def analyze_seo(self, seo_data: Any) -> SeoAiAnalysis:
        """
        Ask the model to review an SEO analysis.

        Uses the active system instruction; the answer structure is fixed.
        Each field defaults on its own, and the score falls back to the
        analysis' own overallScore.
        """
        system, _ = await self.resolve_system_prompt()

        try:
            text = await self._complete(system, self._seo_analysis_prompt(seo_data))
        except GenerationError:
            raise
        except Exception as e:
            log.error(f"SEO analysis generation failed: {str(e)}")
            raise GenerationError(f"SEO analysis generation failed: {str(e)}") from e

        data = extract_json(text)
        if data is None:
            log.warning("SEO analysis answer contained no JSON object; using raw text as summary")
            data = {"summary": text.strip()}

        fallback_score = _score(seo_data.get("overallScore")) if isinstance(seo_data, dict) else 0
        recommendations = []
        raw_recommendations = data.get("recommendations")
        if isinstance(raw_recommendations, list):
            for raw in raw_recommendations:
                recommendation = self._seo_recommendation(raw)
                if recommendation is not None:
                    recommendations.append(recommendation)

        analysis = SeoAiAnalysis(
            overall_score=_score(data.get("overallScore"), fallback_score),
            summary=str(data.get("summary") or ""),
            strengths=_string_list(data.get("strengths")),
            weaknesses=_string_list(data.get("weaknesses")),
            recommendations=recommendations,
        )
        log.info(
            f"Generated SEO analysis: score={analysis.overall_score}, "
            f"{len(analysis.recommendations)} recommendations"
        )
        return analysis

    def build_image_prompt(self, content_text: str, content_type: str) -> str:
        template = IMAGE_PROMPT_TEMPLATES.get(content_type, DEFAULT_IMAGE_TEMPLATE)
        return template.format(subject=content_text.strip()[:MAX_IMAGE_SUBJECT_CHARS])

    async def generate_image(self, content_text: str, content_type: str) -> str:
        """Generate one square illustration and return its (temporary) URL."""
        if self.image_client is None:
            raise GenerationError("Image generation is not configured (OPENAI_API_KEY missing)")

        prompt = self.build_image_prompt(content_text, content_type)
        try:
            response = await self.image_client.images.generate(
                model=self.settings.image_model,
                prompt=prompt,
                size=self.settings.image_size,
                n=1,
            )
        except Exception as e:
            log.error(f"Image generation failed: {str(e)}")
            raise GenerationError(f"Image generation failed: {str(e)}") from e

        url = response.data[0].url if response.data else None
        if not url:
            raise GenerationError("Image generation returned no URL")

        log.info(f"Generated {content_type} image")
        return url
