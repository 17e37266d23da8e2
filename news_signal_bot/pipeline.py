"""Per-source fetch → analyze → deliver pipeline for News Signal Bot."""

from datetime import UTC, datetime
from typing import Any

from .analyze import NewsAnalyzer
from .config import Config
from .logging_config import create_execution_logger
from .models import AnalysisResult, NewsItem
from .rss import create_fetcher, cutoff_since
from .telegram import TelegramAPIError, TelegramPublisher


def new_metrics() -> dict[str, Any]:
    return {
        "sources_processed": 0,
        "items_found": 0,
        "summaries_generated": 0,
        "messages_sent": 0,
        "admin_notifications": 0,
        "errors": [],
    }


class Pipeline:
    """Runs every configured source through fetch, analysis and delivery."""

    def __init__(
        self,
        config: Config,
        analyzer: NewsAnalyzer,
        publisher: TelegramPublisher,
        execution_id: str | None = None,
        dry_run: bool = False,
        fetcher_factory=create_fetcher,
    ):
        self.config = config
        self.analyzer = analyzer
        self.publisher = publisher
        self.execution_id = execution_id
        self.dry_run = dry_run
        self.fetcher_factory = fetcher_factory
        self.logger = create_execution_logger("pipeline", execution_id)
        self.metrics = new_metrics()

    def run(
        self, sources: list[str] | None = None, now: datetime | None = None
    ) -> dict[str, Any]:
        """
        Process each selected source once, sequentially.

        Failures are isolated per source; the run itself never raises for
        fetch, analysis or delivery errors.

        Args:
            sources: Source names to process (all configured ones if None)
            now: Reference time for the cutoff window (defaults to now, UTC)

        Returns:
            Run metrics
        """
        since = cutoff_since(self.config.since_hours, now or datetime.now(UTC))
        selected = self._select_sources(sources)

        self.logger.log_execution_start(
            source_count=len(selected), since=since.isoformat(), dry_run=self.dry_run
        )

        for source_name in selected:
            try:
                self.process_source(source_name, self.config.news_sources[source_name], since)
            except Exception as e:
                self._fail(source_name, "unexpected error", e, exc_info=True)
            self.metrics["sources_processed"] += 1

        self.logger.log_metrics(self.metrics)
        self.logger.log_execution_end(
            success=not self.metrics["errors"], metrics=self.metrics
        )
        return self.metrics

    def _select_sources(self, sources: list[str] | None) -> list[str]:
        if not sources:
            return list(self.config.news_sources)

        unknown = [name for name in sources if name not in self.config.news_sources]
        for name in unknown:
            self.logger.warning(f"Unknown source requested: {name}", source_name=name)
        return [name for name in self.config.news_sources if name in sources]

    def process_source(self, source_name: str, feed_url: str, since: datetime) -> None:
        """Fetch, analyze and deliver a single source."""
        self.logger.log_source_processing(source_name, "started", feed_url=feed_url)

        # Fetch
        fetcher = self.fetcher_factory(
            source_name,
            feed_url,
            timeout=self.config.http_timeout,
            execution_id=self.execution_id,
        )
        try:
            items = fetcher.fetch(since)
        except Exception as e:
            self._fail(source_name, "fetch", e)
            return

        self.metrics["items_found"] += len(items)
        if not items:
            self.logger.log_source_processing(source_name, "no new items")
            self._notify(f"ℹ️ [{source_name}] No news items since {since:%Y-%m-%d %H:%M} UTC.")
            return

        self.preview(source_name, items)

        # Analyze
        try:
            result = self.analyzer.analyze(items)
        except Exception as e:
            self._fail(source_name, "analysis", e)
            return

        if len(result.summary.strip()) < self.config.min_summary_length:
            self.logger.log_source_processing(
                source_name,
                "nothing significant",
                summary_length=len(result.summary.strip()),
            )
            self._notify(
                f"ℹ️ [{source_name}] Nothing of global significance among "
                f"{len(items)} items."
            )
            return

        self.metrics["summaries_generated"] += 1

        # Deliver
        channels = self.config.target_channels.get(source_name, [])
        if not channels:
            self.logger.warning(
                f"No target channel configured for {source_name}",
                source_name=source_name,
            )
            self._notify(
                f"⚠️ [{source_name}] No target channel configured, summary not delivered:"
                f"\n\n{result.summary}"
            )
            return

        for chat_id in channels:
            self.deliver(source_name, chat_id, result)

    def preview(self, source_name: str, items: list[NewsItem]) -> None:
        limit = self.config.content_preview_limit
        for item in items:
            self.logger.info(
                f"{item.published_on:%Y-%m-%d %H:%M} {item.title}",
                source_name=source_name,
                item_title=item.title,
                link=item.link,
                content_preview=item.content[:limit],
            )

    def deliver(self, source_name: str, chat_id: str, result: AnalysisResult) -> None:
        """Deliver one summary to one channel and report the outcome to admin."""
        if self.dry_run:
            self.logger.info(
                "Dry run: skipping channel delivery",
                source_name=source_name,
                chat_id=chat_id,
                image_url=result.image_url,
                summary=result.summary,
            )
            self._notify(f"🧪 [{source_name}] Dry run, would post to {chat_id}.")
            return

        try:
            if result.image_url:
                self.publisher.send_photo(
                    chat_id, result.image_url, result.summary, source_name
                )
            else:
                self.publisher.send_message(chat_id, result.summary, source_name)
        except TelegramAPIError as e:
            self._fail(source_name, f"delivery to {chat_id}", e, chat_id=chat_id)
            return

        self.metrics["messages_sent"] += 1
        self.logger.log_source_processing(source_name, "delivered", chat_id=chat_id)
        self._notify(f"✅ [{source_name}] Summary posted to {chat_id}.")

    def _fail(
        self,
        source_name: str,
        stage: str,
        error: Exception,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        error_msg = f"[{source_name}] {stage} failed: {error}"
        self.metrics["errors"].append(error_msg)
        self.logger.error(
            error_msg,
            exc_info=exc_info,
            source_name=source_name,
            stage=stage,
            error=str(error),
            **kwargs,
        )
        self._notify(f"❌ {error_msg}")

    def _notify(self, text: str) -> None:
        if self.publisher.notify_admin(text):
            self.metrics["admin_notifications"] += 1
