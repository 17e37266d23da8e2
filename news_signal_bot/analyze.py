"""News analysis module using a generative-text API (Gemini or Amazon Bedrock)."""

import json
import time
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config as BotoConfig
from google import genai
from google.genai import types

from . import constants
from .config import AnalysisConfig
from .logging_config import create_execution_logger
from .models import AnalysisResult, NewsItem
from .retry import retry

DEFAULT_PROMPT_TEMPLATE = """You are an expert news analyst. Your task is to identify which news items have long-term significance (signal) and which are transient noise.

For each of these news articles, assign an importance score from 1 to 10, where 10 = extremely significant global event (10 in a year at most) and 1 = trivial update. Pick the single article you judge 10/10 important and rewrite it concisely and factually, removing opinions and adjectives.

Criteria for importance:
- global or structural impact
- technological or geopolitical shift
- enduring relevance (not just event-of-the-day)

If the chosen article has an Image line, put that image URL alone on the first line of your answer. Otherwise start directly with the text.
If no article is of global significance, answer with an empty response.

Return just text with markdown, no links.

Output in 3-5 sentences: what happened, why it matters, what might follow.
Tone: factual, calm, timeless.

News Articles:
{news}"""


class AnalysisError(RuntimeError):
    """Raised when the LLM could not be reached after every retry."""


class AnalysisBackend(Protocol):
    """A generative-text API that turns one prompt into raw text."""

    name: str

    def generate(self, prompt: str) -> str: ...


class GeminiBackend:
    """Google Gemini via the google-genai SDK."""

    name = constants.PROVIDER_GEMINI

    def __init__(self, api_key: str, model: str, timeout: int):
        self.model = model
        # HttpOptions.timeout is in milliseconds
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=timeout * 1000),
        )

    def generate(self, prompt: str) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(temperature=0.3),
        )
        return response.text or ""


class BedrockBackend:
    """Amazon Bedrock runtime (Nova / Mistral messages format, Llama prompt format)."""

    name = constants.PROVIDER_BEDROCK

    def __init__(self, model_id: str, region: str, timeout: int, max_tokens: int):
        self.model_id = model_id
        self.max_tokens = max_tokens
        # Retries are handled by NewsAnalyzer, not botocore
        self.client = boto3.client(
            "bedrock-runtime",
            region_name=region,
            config=BotoConfig(
                read_timeout=timeout,
                connect_timeout=timeout,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )

    @property
    def is_llama(self) -> bool:
        return "llama" in self.model_id.lower()

    def build_request(self, prompt: str) -> dict:
        if self.is_llama:
            return {
                "prompt": prompt,
                "max_gen_len": self.max_tokens,
                "temperature": 0.3,
                "top_p": 0.9,
            }
        return {
            "messages": [{"role": "user", "content": [{"text": prompt}]}],
            "inferenceConfig": {"maxTokens": self.max_tokens, "temperature": 0.3},
        }

    def generate(self, prompt: str) -> str:
        response = self.client.invoke_model(
            modelId=self.model_id,
            body=json.dumps(self.build_request(prompt)),
            contentType="application/json",
            accept="application/json",
        )
        return self.parse_response(json.loads(response["body"].read()))

    def parse_response(self, body: dict) -> str:
        if self.is_llama:
            return body.get("generation") or ""

        content = body.get("output", {}).get("message", {}).get("content") or []
        if content:
            return content[0].get("text") or ""
        return ""


def create_backend(config: AnalysisConfig) -> AnalysisBackend:
    """Build the backend selected by ANALYSIS_PROVIDER."""
    if config.provider == constants.PROVIDER_BEDROCK:
        return BedrockBackend(
            model_id=config.bedrock_model_id,
            region=config.aws_region,
            timeout=config.timeout,
            max_tokens=config.max_tokens,
        )
    return GeminiBackend(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        timeout=config.timeout,
    )


class NewsAnalyzer:
    """Asks the LLM which news item matters and returns its summary."""

    def __init__(
        self,
        config: AnalysisConfig,
        backend: AnalysisBackend | None = None,
        execution_id: str | None = None,
    ):
        self.config = config
        self.logger = create_execution_logger("analyzer", execution_id)
        self.backend = backend or create_backend(config)
        self.prompt_template = self._load_prompt_template()

        self.logger.info(
            "NewsAnalyzer initialized",
            provider=self.backend.name,
            retry_attempts=config.retry_attempts,
        )

    def _load_prompt_template(self) -> str:
        """Load prompt template from PROMPT_FILE, falling back to the built-in one."""
        if not self.config.prompt_file:
            return DEFAULT_PROMPT_TEMPLATE

        template_file = Path(self.config.prompt_file)
        try:
            template = template_file.read_text(encoding="utf-8")
        except OSError as e:
            self.logger.warning(f"Failed to load template file: {e}", error=str(e))
            return DEFAULT_PROMPT_TEMPLATE

        if "{news}" not in template:
            self.logger.warning(
                f"Template {template_file} has no {{news}} placeholder, using default"
            )
            return DEFAULT_PROMPT_TEMPLATE
        return template

    def build_prompt(self, items: list[NewsItem]) -> str:
        """Embed every item's title, image and content into the prompt."""
        blocks = []
        for item in items:
            block = f"Title: {item.title}\n"
            if item.image_url:
                block += f"Image: {item.image_url}\n"
            block += f"Content: {item.content}\n\n"
            blocks.append(block)

        return self.prompt_template.replace("{news}", "".join(blocks))

    def analyze(self, items: list[NewsItem]) -> AnalysisResult:
        """Run the LLM over a batch of news items.

        Args:
            items: News items from one source

        Returns:
            Parsed AnalysisResult; an empty summary means nothing significant

        Raises:
            AnalysisError: If every attempt failed
        """
        prompt = self.build_prompt(items)
        self.logger.info(
            f"Analyzing {len(items)} news items",
            provider=self.backend.name,
            prompt_length=len(prompt),
        )

        start_time = time.time()
        try:
            raw = retry(
                self.config.retry_attempts,
                self.config.retry_delay,
                lambda: self.backend.generate(prompt),
                logger=self.logger,
            )
        except Exception as e:
            self.logger.error(
                f"Analysis failed after {self.config.retry_attempts} attempts: {e}",
                error=str(e),
            )
            raise AnalysisError(f"Failed to analyze news: {e}") from e

        result = parse_analysis(raw)
        self.logger.info(
            "Analysis completed",
            response_time_ms=int((time.time() - start_time) * 1000),
            response_length=len(raw or ""),
            has_image=result.image_url is not None,
        )
        return result


def parse_analysis(raw: str | None) -> AnalysisResult:
    """Split an optional leading image URL from the summary text.

    A first line consisting of a bare http(s) URL is the image reference
    and the remainder is the summary. Anything else is all summary.
    """
    if not raw or not raw.strip():
        return AnalysisResult(image_url=None, summary="")

    text = raw.strip()
    first_line, _, rest = text.partition("\n")
    candidate = first_line.strip()

    if candidate.startswith(("http://", "https://")) and not any(
        ch.isspace() for ch in candidate
    ):
        return AnalysisResult(image_url=candidate, summary=rest.strip())

    return AnalysisResult(image_url=None, summary=text)
