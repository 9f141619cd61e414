"""Where VectorDBBench result files are read from.

VectorDBBench writes `result_<date>_<label>_<db>.json` files under
`results/<DB client>/`. A results tree is either a local directory or a
published copy of one inside a Hugging Face dataset repository; both are
turned into a local directory before loading.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

from huggingface_hub import snapshot_download
from huggingface_hub.errors import GatedRepoError, RepositoryNotFoundError

from vdbbench_dashboard.raw.filename_parser import RESULT_PREFIX, RESULT_SUFFIX

logger = logging.getLogger(__name__)

RESULT_PATTERNS = [f"{RESULT_PREFIX}*{RESULT_SUFFIX}", f"**/{RESULT_PREFIX}*{RESULT_SUFFIX}"]


class ResultsSource(Protocol):
    """Anything that can provide a local results root."""

    def local_root(self) -> Path:
        """Directory to scan for `result_*.json` files."""
        ...


@dataclass(frozen=True)
class LocalResultsSource:
    """A results directory on disk, e.g. `vectordb_bench/results`."""

    root: Path

    def local_root(self) -> Path:
        p = Path(self.root)
        if not p.exists():
            raise FileNotFoundError(f"Results directory does not exist: {p}")
        if not p.is_dir():
            raise NotADirectoryError(f"Results path is not a directory: {p}")
        return p


def _access_hint(exc: RepositoryNotFoundError, repo_id: str) -> str:
    url = f"https://huggingface.co/datasets/{repo_id}"
    if isinstance(exc, GatedRepoError):
        return f"Results dataset '{repo_id}' is gated; request access at {url}."
    if os.environ.get("HF_TOKEN"):
        return f"HF_TOKEN was rejected for results dataset '{repo_id}'; check {url}."
    return f"Results dataset '{repo_id}' not found; set HF_TOKEN if it is private."


@dataclass(frozen=True)
class HFResultsSource:
    """Result files published in a Hugging Face dataset repository.

    Attributes:
        repo_id: Dataset repository, e.g. `"org/vdbbench-results"`.
        revision: Branch, tag or commit to read.
        subdir: Folder of the repo holding the results tree (for repos that
            mirror a whole VectorDBBench checkout, `"vectordb_bench/results"`).
            Only files below it are downloaded.
        cache_dir: Override for the Hugging Face cache location.
    """

    repo_id: str
    revision: str | None = None
    subdir: str | None = None
    cache_dir: Path | None = None

    @property
    def allow_patterns(self) -> list[str]:
        if not self.subdir:
            return list(RESULT_PATTERNS)
        prefix = PurePosixPath(self.subdir.strip("/"))
        return [str(prefix / pattern) for pattern in RESULT_PATTERNS]

    def local_root(self) -> Path:
        try:
            snapshot = snapshot_download(
                repo_id=self.repo_id,
                repo_type="dataset",
                revision=self.revision,
                cache_dir=(str(self.cache_dir) if self.cache_dir is not None else None),
                allow_patterns=self.allow_patterns,
            )
        except RepositoryNotFoundError as e:
            logger.error(_access_hint(e, self.repo_id))
            raise
        root = Path(snapshot)
        if self.subdir:
            root = root / self.subdir.strip("/")
        return LocalResultsSource(root).local_root()


SourceLike = ResultsSource | str | Path


def resolve_source_root(source: SourceLike) -> Path:
    """Resolve a source-like input into a local results root path."""
    if isinstance(source, (str, Path)):
        root = LocalResultsSource(Path(source)).local_root()
    else:
        root = source.local_root()
    logger.debug("Resolved results root: %s", root)
    return root
