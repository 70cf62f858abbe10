"""
Tests for OutputMasker.

Tests cover:
- Every occurrence of every secret is replaced
- Longest-first matching of overlapping secrets
- Nested dicts, lists and tuples; keys and non-string scalars untouched
- Empty secret sets return the input unchanged
- Reference cycles raise MaskingError
- Masking through a SecretDirectory
"""
import logging

import pytest

from navigator_secrets import OutputMasker, SecretDirectory
from navigator_secrets.exceptions import MaskingError, StoreUnavailable
from navigator_secrets.masking import compile_secrets


@pytest.fixture
def masker():
    return OutputMasker()


# --- Test Pattern Building ---

class TestCompileSecrets:
    """Tests for building the replacement pattern."""

    def test_nothing_to_mask(self):
        """Empty and non-string values build no pattern."""
        assert compile_secrets([]) is None
        assert compile_secrets(["", None, 42]) is None

    def test_longest_alternative_first(self):
        """The pattern tries longer secrets first."""
        pattern = compile_secrets(["abc", "abcdef", "ab"])
        assert pattern.pattern.startswith("abcdef|")

    def test_regex_metacharacters_escaped(self):
        """Secrets are matched literally."""
        pattern = compile_secrets(["a.b*c"])
        assert pattern.search("aXbbbc") is None
        assert pattern.search("xx a.b*c xx") is not None


# --- Test Masking ---

class TestMask:
    """Tests for scrubbing output structures."""

    def test_substring_occurrence(self, masker):
        """Secrets embedded in longer strings are masked."""
        assert masker.mask({"token": "abc-secret123-xyz"}, ["secret123"]) == {
            "token": "abc-***-xyz"
        }

    def test_every_occurrence(self, masker):
        """Every occurrence of a secret is replaced."""
        assert masker.mask("pw pw pw", ["pw"]) == "*** *** ***"

    def test_longest_first(self, masker):
        """A secret containing another is masked whole."""
        output = {"log": "key=abcdef and abc"}
        assert masker.mask(output, ["abc", "abcdef"]) == {"log": "key=*** and ***"}

    def test_no_secret_survives(self, masker):
        """No secret value remains anywhere in the output."""
        secrets = ["s3cr3t", "t0k3n", "p@ss.word"]
        output = {"a": "s3cr3t/t0k3n", "b": ["x p@ss.word y"]}
        masked = masker.mask(output, secrets)
        flat = str(masked)
        for secret in secrets:
            assert secret not in flat

    def test_nested_structures(self, masker):
        """Nested dicts, lists and tuples are masked and keep their types."""
        output = {
            "level1": {
                "items": ["ok", "has secret", ("tuple secret", 1)],
                "count": 3,
                "flag": True,
                "none": None,
            }
        }
        masked = masker.mask(output, ["secret"])
        assert masked == {
            "level1": {
                "items": ["ok", "has ***", ("tuple ***", 1)],
                "count": 3,
                "flag": True,
                "none": None,
            }
        }
        assert isinstance(masked["level1"]["items"][2], tuple)

    def test_keys_are_not_masked(self, masker):
        """Dict keys are left as they are."""
        assert masker.mask({"secret": "secret"}, ["secret"]) == {"secret": "***"}

    def test_input_is_not_mutated(self, masker):
        """Masking builds a copy and leaves the input untouched."""
        output = {"a": ["secret"]}
        masker.mask(output, ["secret"])
        assert output == {"a": ["secret"]}

    def test_idempotent(self, masker):
        """Masking already masked output changes nothing."""
        secrets = ["alpha", "beta"]
        once = masker.mask({"x": "alpha beta"}, secrets)
        assert masker.mask(once, secrets) == once

    def test_empty_secrets_returns_same_object(self, masker):
        """Nothing to mask returns the input object itself."""
        output = {"a": "value"}
        assert masker.mask(output, []) is output
        assert masker.mask(output, [""]) is output

    def test_non_string_leaves(self, masker):
        """Non-string scalars are never masked."""
        assert masker.mask(12345, ["12345"]) == 12345
        assert masker.mask(None, ["x"]) is None

    def test_shared_references_are_not_cycles(self, masker):
        """Shared sub-structures are not mistaken for cycles."""
        shared = ["secret"]
        masked = masker.mask({"a": shared, "b": shared}, ["secret"])
        assert masked == {"a": ["***"], "b": ["***"]}

    def test_reference_cycle_raises(self, masker):
        """A reference cycle raises MaskingError."""
        output = {"a": "secret"}
        output["self"] = output
        with pytest.raises(MaskingError):
            masker.mask(output, ["secret"])

    def test_custom_token_with_backslash(self):
        """Backslashes in the mask token are inserted literally."""
        masker = OutputMasker(mask_token=r"\1[hidden]")
        assert masker.mask("x-secret-y", ["secret"]) == r"x-\1[hidden]-y"


# --- Test Masking Through the Directory ---

class TestMaskForWorkflow:
    """Tests for masking with the secrets visible to a workflow."""

    @pytest.fixture
    def directory(self, store):
        return SecretDirectory(store)

    @pytest.mark.asyncio
    async def test_masks_global_and_workflow_secrets(self, directory):
        """Workflow output is masked with global and workflow secrets."""
        await directory.put_secret("g", "global-value")
        await directory.put_secret("w", "wf-value", workflow_name="W")
        masker = OutputMasker(directory)
        output = {"out": "global-value and wf-value"}
        assert await masker.mask_for_workflow(output, "W") == {"out": "*** and ***"}
        assert await masker.mask_for_workflow(output, "other") == {"out": "*** and wf-value"}

    @pytest.mark.asyncio
    async def test_empty_output_returned_as_is(self, directory):
        """Empty output is returned without loading secrets."""
        masker = OutputMasker(directory)
        output = {}
        assert await masker.mask_for_workflow(output, "W") is output

    @pytest.mark.asyncio
    async def test_no_secrets_returns_same_object(self, directory):
        """Without secrets the output object is returned as is."""
        masker = OutputMasker(directory)
        output = {"a": "value"}
        assert await masker.mask_for_workflow(output, "W") is output

    @pytest.mark.asyncio
    async def test_unavailable_store_leaves_output_unmasked(self, directory, store):
        """An unavailable store returns the output unscanned."""
        await directory.put_secret("g", "global-value")

        async def broken(scope):
            raise StoreUnavailable("get_all", "connection refused")

        store.fetch_all = broken
        directory.invalidate_all()
        masker = OutputMasker(directory)
        output = {"out": "global-value"}
        assert await masker.mask_for_workflow(output, "W") is output

    @pytest.mark.asyncio
    async def test_requires_directory(self):
        """Workflow masking needs a directory."""
        with pytest.raises(MaskingError):
            await OutputMasker().mask_for_workflow({"a": "b"}, "W")

    @pytest.mark.asyncio
    async def test_empty_workflow_name_masks_global_secrets(self, directory):
        """An empty workflow name still masks every global secret."""
        await directory.put_secret("db", "hunter2")
        masker = OutputMasker(directory)
        masked = await masker.mask_for_workflow({"log": "password=hunter2"}, "")
        assert masked == {"log": "password=***"}

    @pytest.mark.asyncio
    async def test_masking_failure_is_logged(self, directory, caplog):
        """A walk failure is logged with the workflow name and re-raised."""
        await directory.put_secret("g", "global-value")
        output = {"out": "global-value"}
        output["self"] = output
        masker = OutputMasker(directory)
        with caplog.at_level(logging.ERROR, logger="navigator.secrets"):
            with pytest.raises(MaskingError):
                await masker.mask_for_workflow(output, "W")
        assert "Failed to mask output for workflow W" in caplog.text
        assert "global-value" not in caplog.text
