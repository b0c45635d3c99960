"""Group API routes into output categories by their path segments."""

from api_codegen_universal.options import PathClassificationOptions
from api_codegen_universal.parser.base import CategoryInfo


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


def _is_parameter(segment: str) -> bool:
    return "{" in segment or segment.startswith(":")


class PathClassifier:
    """Maps a route path to a :class:`CategoryInfo`.

    The common prefix is only removed on a segment boundary, so ``/api/v1``
    strips ``/api/v1/users`` but leaves ``/api/v10/users`` alone.
    """

    def __init__(self, options: PathClassificationOptions | None = None):
        self.options = options or PathClassificationOptions()
        self.common_prefix = _normalize_prefix(self.options.common_prefix)

    def strip_prefix(self, path: str) -> str:
        prefix = self.common_prefix
        if prefix and (path == prefix or path.startswith(prefix + "/")):
            return path[len(prefix):]
        return path

    def classify(self, path: str) -> CategoryInfo:
        segments = [
            s for s in self.strip_prefix(path).split("/")
            if s and not _is_parameter(s)
        ][: self.options.max_depth]

        output_prefix = self.options.output_prefix.rstrip("/")
        if not segments:
            return CategoryInfo(
                segments=[],
                depth=0,
                is_unclassified=True,
                file_path=f"{output_prefix}/unclassified.ts",
            )
        return CategoryInfo(
            segments=segments,
            depth=len(segments),
            is_unclassified=False,
            file_path=f"{output_prefix}/{'/'.join(segments)}/index.ts",
        )

    def classify_batch(self, paths) -> dict[str, CategoryInfo]:
        return {path: self.classify(path) for path in paths}
