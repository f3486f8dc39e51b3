import asyncio
import json
import logging
from typing import List, NamedTuple

from pydantic import ValidationError

from vidrelay.config.settings import config
from vidrelay.core.errors import UpstreamError
from vidrelay.models.upstream import YtDlpInfo
from vidrelay.utils.urls import youtube_watch_url

logger = logging.getLogger(__name__)

STDERR_TAIL = 200

class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        Prevents process leaks and ensures consistent error handling.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        except Exception:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def build_info_command(url: str) -> List[str]:
        """Build command for fetching video info without downloading"""
        cmd = [
            config.ytdlp.binary,
            '--dump-json',
            '--no-playlist',
            '--skip-download',
            '--no-warnings',
            '--socket-timeout', str(config.ytdlp.socket_timeout),
            '--retries', str(config.ytdlp.retries),
        ]

        if config.ytdlp.js_runtime:
            cmd.extend(['--js-runtimes', config.ytdlp.js_runtime])

        cmd.append(url)

        return cmd

    @staticmethod
    def build_version_command() -> List[str]:
        return [config.ytdlp.binary, '--version']

class YtDlpService:
    """Resolve stream metadata through the yt-dlp CLI"""

    def __init__(self, executor=SubprocessExecutor):
        self.executor = executor

    async def fetch_info(self, video_id: str) -> YtDlpInfo:
        cmd = YTDLPCommandBuilder.build_info_command(youtube_watch_url(video_id))

        try:
            result = await self.executor.run(cmd, timeout=config.ytdlp.timeout_seconds)
        except asyncio.TimeoutError:
            raise UpstreamError("error.info_failed", "yt-dlp timeout", kind="timeout", status_code=504)
        except OSError as e:
            logger.error(f"Failed to start yt-dlp: {e}")
            raise UpstreamError("error.info_failed", f"Failed to start yt-dlp: {e}", kind="network")

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="ignore").strip()
            raise UpstreamError(
                "error.info_failed",
                error_msg[-STDERR_TAIL:] or f"yt-dlp exited with {result.returncode}",
                kind="status",
            )

        try:
            return YtDlpInfo.model_validate(json.loads(result.stdout.decode(errors="ignore")))
        except (ValueError, ValidationError):
            raise UpstreamError("error.info_failed", "Failed to parse yt-dlp output", kind="parse")

    async def version(self) -> str:
        try:
            result = await self.executor.run(YTDLPCommandBuilder.build_version_command(), timeout=10.0)
        except (asyncio.TimeoutError, OSError):
            return "unknown"

        if result.returncode != 0:
            return "unknown"
        return result.stdout.decode(errors="ignore").strip() or "unknown"
