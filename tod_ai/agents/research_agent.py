# tod_ai/agents/research_agent.py
"""
Research Paper Recommendation

1. Extract academic keywords + domain from the student's idea (Gemini)
2. Search Semantic Scholar with those keywords
3. Summarize every paper and explain its relevance (Gemini, concurrently)
"""
import asyncio
from typing import List

from pydantic import BaseModel, ValidationError

from tod_ai.config import get_logger
from tod_ai.tools.json_parser import parse_json_response
from tod_ai.tools.semantic_scholar_tool import Paper, search_papers
from tod_ai.utils.errors import GenerationError
from tod_ai.utils.model_router import GeminiRouter

logger = get_logger(__name__)

SUMMARY_FALLBACK = "Summary not available"
RELEVANCE_FALLBACK = "Relevance not available"
NO_ABSTRACT = "No abstract available"

KEYWORDS_PROMPT = """Analyze the following student research prompt and extract:
1. 5-7 academic keywords that best represent the research topic
2. The primary research domain (e.g., Computer Science, Biology, Physics, etc.)

Return ONLY a JSON object with this exact structure:
{{
  "keywords": ["keyword1", "keyword2"],
  "domain": "domain_name"
}}

Student prompt: "{prompt}"
"""

SUMMARY_PROMPT = """Given the research paper abstract and the student's topic, provide:
1. A simplified summary of the abstract in 2-3 lines, written in student-friendly language
2. A brief explanation (1-2 lines) of how this paper is relevant to the student's research topic

Return ONLY a JSON object with this exact structure:
{{
  "summary": "simplified summary text",
  "relevance": "relevance explanation"
}}

Student topic: "{topic}"
Paper abstract: "{abstract}"
"""


class TopicAnalysis(BaseModel):
    keywords: List[str]
    domain: str = "General"


class PaperSummary(BaseModel):
    title: str
    authors: List[str]
    year: str
    summary: str
    paper_link: str
    relevance: str


class ResearchRecommendation(BaseModel):
    topic: str
    domain: str
    papers: List[PaperSummary]


async def extract_keywords_and_domain(router: GeminiRouter, prompt: str) -> TopicAnalysis:
    text = await router.generate(KEYWORDS_PROMPT.format(prompt=prompt), temperature=0.3)
    parsed = parse_json_response(text, expect=dict)
    if not parsed:
        raise ValueError("Failed to extract keywords and domain from prompt")
    if not parsed.get("domain"):
        parsed.pop("domain", None)

    try:
        analysis = TopicAnalysis.model_validate(parsed)
    except ValidationError as e:
        raise ValueError("Failed to extract keywords and domain from prompt") from e

    keywords = [k.strip() for k in analysis.keywords if k.strip()]
    if not keywords:
        raise ValueError("Failed to extract keywords and domain from prompt")
    analysis = analysis.model_copy(update={"keywords": keywords})
    logger.info("🏷️ Keywords: %s | Domain: %s", ", ".join(analysis.keywords), analysis.domain)
    return analysis


async def summarize_paper(router: GeminiRouter, paper: Paper, topic: str) -> PaperSummary:
    """Summary + relevance for one paper; falls back to placeholders on failure."""
    summary, relevance = SUMMARY_FALLBACK, RELEVANCE_FALLBACK
    try:
        text = await router.generate(
            SUMMARY_PROMPT.format(topic=topic, abstract=paper.abstract or NO_ABSTRACT),
            temperature=0.4,
        )
        parsed = parse_json_response(text, expect=dict)
        if parsed is None:
            raise ValueError("unparseable summary")
        summary = str(parsed.get("summary") or SUMMARY_FALLBACK)
        relevance = str(parsed.get("relevance") or RELEVANCE_FALLBACK)
    except (GenerationError, ValueError) as e:
        logger.warning("⚠️ Could not summarize '%s': %s", paper.title[:60], str(e)[:100])

    return PaperSummary(
        title=paper.title,
        authors=paper.authors,
        year=str(paper.year) if paper.year else "Unknown",
        summary=summary,
        paper_link=paper.url,
        relevance=relevance,
    )


async def recommend_papers(router: GeminiRouter, student_prompt: str) -> ResearchRecommendation:
    if not isinstance(student_prompt, str) or not student_prompt.strip():
        raise ValueError('Expected a non-empty research prompt')

    topic = student_prompt.strip()
    logger.info("📚 Recommending papers for: %s", topic[:80])

    analysis = await extract_keywords_and_domain(router, topic)
    papers = await asyncio.to_thread(search_papers, analysis.keywords)

    # gather keeps input order, so results line up with `papers`
    summaries = await asyncio.gather(*(summarize_paper(router, paper, topic) for paper in papers))

    return ResearchRecommendation(topic=topic, domain=analysis.domain, papers=list(summaries))
