"""Secret masking for task output.

Walks arbitrary JSON-like output (dicts, lists, tuples, scalars) and replaces
every occurrence of a secret value inside string leaves with a mask token.

Secrets are matched longest first through a single escaped alternation, so a
secret that is a substring of another never leaves the longer secret's tail
visible. Dict keys and non-string scalars are kept as they are.

Failure policy:
    - no secrets to mask: the input object itself is returned,
    - the secret set could not be loaded: the directory degrades to ``{}``
      and logs, so the output is returned unscanned,
    - the walk itself fails (reference cycle, nesting too deep):
      ``MaskingError`` is raised and no partially masked copy escapes.
"""
import logging
import re
from collections.abc import Iterable
from typing import Any, Optional, TYPE_CHECKING

from .exceptions import MaskingError
from .vault.config import MASK_TOKEN

if TYPE_CHECKING:
    from .directory import SecretDirectory

logger = logging.getLogger("navigator.secrets")


def compile_secrets(secret_values: Iterable[Any]) -> Optional[re.Pattern]:
    """Build the replacement pattern for a set of secret values.

    Non-string and empty values are dropped. Returns None when nothing is
    left to mask.
    """
    values = {v for v in secret_values if isinstance(v, str) and v}
    if not values:
        return None
    ordered = sorted(values, key=lambda v: (-len(v), v))
    return re.compile("|".join(re.escape(v) for v in ordered))


class OutputMasker:
    """Scrubs secret values out of nested output data.

    Args:
        directory: Secret directory used by ``mask_for_workflow``.
        mask_token: Replacement for every secret occurrence.
    """

    def __init__(
        self,
        directory: Optional["SecretDirectory"] = None,
        mask_token: str = MASK_TOKEN,
    ):
        self._directory = directory
        self.mask_token = mask_token
        # re.sub expands backslash escapes in a replacement string
        self._replacement = mask_token.replace("\\", "\\\\")

    def mask(self, data: Any, secret_values: Iterable[Any]) -> Any:
        """Return ``data`` with every secret occurrence replaced.

        Args:
            data: Output structure to scrub.
            secret_values: Plaintext secret values.

        Returns:
            A structurally equivalent copy, or ``data`` itself when there is
            nothing to mask.

        Raises:
            MaskingError: If the structure cannot be walked completely.
        """
        pattern = compile_secrets(secret_values)
        if pattern is None:
            return data
        try:
            return self._mask_value(data, pattern, set())
        except MaskingError:
            raise
        except RecursionError as err:
            raise MaskingError("Output is nested too deeply to mask") from err

    def _mask_value(self, value: Any, pattern: re.Pattern, path: set[int]) -> Any:
        if isinstance(value, str):
            return pattern.sub(self._replacement, value)
        if isinstance(value, (dict, list, tuple)):
            marker = id(value)
            if marker in path:
                raise MaskingError("Output contains a reference cycle")
            path.add(marker)
            try:
                if isinstance(value, dict):
                    return {
                        key: self._mask_value(item, pattern, path)
                        for key, item in value.items()
                    }
                masked = [self._mask_value(item, pattern, path) for item in value]
                return tuple(masked) if isinstance(value, tuple) else masked
            finally:
                path.discard(marker)
        return value

    async def mask_for_workflow(self, data: Any, workflow_name: Optional[str] = None) -> Any:
        """Mask ``data`` with the secrets visible to ``workflow_name``.

        Uses global secrets overlaid with the workflow's own secrets.

        Raises:
            MaskingError: If the output cannot be walked completely.
        """
        if not data:
            return data
        if self._directory is None:
            raise MaskingError("No secret directory configured for masking")
        secrets = await self._directory.secrets_for_scope(workflow_name)
        if not secrets:
            return data
        try:
            return self.mask(data, secrets.values())
        except MaskingError as err:
            logger.error(
                "Failed to mask output for workflow %s: %s", workflow_name, err,
            )
            raise
