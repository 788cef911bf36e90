"""Main application entry point."""

import asyncio
import logging
from typing import Any, Optional

import uvicorn

from .api.app import create_app
from .api.dependencies import set_debouncer_instance, set_frame_rate_instance
from .config import Config
from .engine import ReportedFrameRate, VoiceCommand, VoiceCommandDebouncer
from .metrics import MetricsCollector
from .webhook import WebhookForwarder

logger = logging.getLogger(__name__)


def log_command(command: VoiceCommand, context: Any = None) -> bool:
    """Command handler used when no webhook is configured."""
    logger.info(
        f"Voice command executed: {command.text}",
        extra={"confidence": command.confidence},
    )
    return True


def log_debug_event(event: str, data: dict[str, Any]) -> None:
    logger.debug(f"Engine event: {event}", extra={"event": event, "data": data})


class Application:
    """Main application controller."""

    def __init__(self, config: Config):
        """
        Initialize application.

        Args:
            config: Application configuration
        """
        self.config = config
        self.metrics: Optional[MetricsCollector] = None
        self.frame_rate: Optional[ReportedFrameRate] = None
        self.debouncer: Optional[VoiceCommandDebouncer] = None
        self.webhook_forwarder: Optional[WebhookForwarder] = None
        self.api_server_task: Optional[asyncio.Task] = None
        self.running = False

    async def start(self) -> None:
        """Start the application."""
        logger.info("Starting Voicegate")
        logger.info(f"\n{self.config.display()}")

        if self.config.metrics_enabled:
            self.metrics = MetricsCollector()

        self.frame_rate = ReportedFrameRate()
        self.debouncer = VoiceCommandDebouncer(
            options=self.config.engine_options(),
            fps_provider=self.frame_rate,
            metrics=self.metrics,
        )
        self.debouncer.on_debug(log_debug_event)

        if self.config.webhook_url:
            logger.info("Initializing webhook forwarder")
            self.webhook_forwarder = WebhookForwarder(
                url=self.config.webhook_url,
                jsonpath=self.config.webhook_jsonpath,
                timeout=self.config.webhook_timeout,
                retry_count=self.config.webhook_retry_count,
            )
            self.debouncer.on_command(self.webhook_forwarder)
        else:
            self.debouncer.on_command(log_command)

        # Make the engine available to API routes
        set_debouncer_instance(self.debouncer)
        set_frame_rate_instance(self.frame_rate)

        logger.info(f"Starting API server on {self.config.api_host}:{self.config.api_port}")
        self.api_server_task = asyncio.create_task(self._run_api_server())

        self.running = True
        logger.info("Application started successfully")

    async def stop(self) -> None:
        """Stop the application."""
        logger.info("Stopping Voicegate...")
        self.running = False

        if self.api_server_task:
            self.api_server_task.cancel()
            try:
                await self.api_server_task
            except asyncio.CancelledError:
                pass
            self.api_server_task = None

        if self.debouncer:
            self.debouncer.destroy()

        if self.webhook_forwarder:
            await self.webhook_forwarder.close()
            self.webhook_forwarder = None

        set_debouncer_instance(None)
        set_frame_rate_instance(None)

        logger.info("Application stopped")

    async def _run_api_server(self) -> None:
        """Run the FastAPI server."""
        try:
            app = create_app(
                title=self.config.api_title,
                version=self.config.api_version,
                enable_metrics=self.config.metrics_enabled,
                bearer_token=self.config.api_bearer_token,
            )

            config = uvicorn.Config(
                app,
                host=self.config.api_host,
                port=self.config.api_port,
                log_level="info",
                access_log=True,
            )

            server = uvicorn.Server(config)
            await server.serve()

        except asyncio.CancelledError:
            logger.info("API server shutting down...")
            raise
        except Exception as e:
            logger.error(f"API server error: {e}", exc_info=True)
            if self.metrics:
                self.metrics.record_error("api_server", "server_failed")

        # Server exited on its own (e.g. uvicorn handled a signal)
        self.running = False

    async def run(self) -> None:
        """Run the application until interrupted."""
        try:
            await self.start()

            while self.running:
                await asyncio.sleep(1)

        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        except Exception as e:
            logger.error(f"Application error: {e}", exc_info=True)
        finally:
            await self.stop()


def main() -> None:
    """Main entry point - delegates to CLI."""
    from .cli import cli
    cli()


if __name__ == "__main__":
    main()
