"""Download the release bundle for a tag."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from .errors import DownloadFailed, RetryExhausted, TransientRemoteError
from .events import NullListener, ProgressListener, StepReporter
from .remote import RemoteClient
from .retry import RetryPolicy, execute


class ArtifactFetcher:
    def __init__(
        self,
        client: RemoteClient,
        download_dir: Path,
        *,
        policy: RetryPolicy,
        sleep: Optional[Callable[[float], None]] = None,
        listener: Optional[ProgressListener] = None,
    ) -> None:
        self.client = client
        self.download_dir = Path(download_dir)
        self.policy = policy
        self.sleep = sleep
        self.reporter = StepReporter(listener or NullListener(), "fetch")

    def download(self, tag: str, filename: str) -> Path:
        """Fetch ``filename`` from release ``tag`` and return its local path.

        A call that returns without error but leaves no file behind counts as a
        failed attempt.
        """

        target = self.download_dir / filename
        self.reporter.started(f"Downloading {filename} from release {tag} into {self.download_dir}")

        def _attempt() -> Path:
            self.client.download_release_asset(tag, filename, self.download_dir)
            if not target.is_file():
                raise TransientRemoteError(f"download failed: {target} not present")
            return target

        try:
            path = execute(
                self.policy,
                _attempt,
                name="Download release",
                sleep=self.sleep,
                on_retry=self.reporter.retry,
            )
        except RetryExhausted as exc:
            self.reporter.failed(f"Download failed after {exc.attempts} attempt(s)")
            raise DownloadFailed(tag, filename, exc.attempts, exc.last_error) from exc
        self.reporter.succeeded(f"Downloaded: {filename}", path=str(path))
        return path
