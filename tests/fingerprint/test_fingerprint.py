"""Tests for the fingerprint engine."""

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from enrich.fingerprint import canonicalize_options, fingerprint, normalize_prompt
from enrich.orchestrator.models import EnhanceOptions


class TestNormalizePrompt:
    def test_collapses_whitespace_and_case(self) -> None:
        """Test collapses whitespace and case."""
        assert normalize_prompt("  Build   a\tREACT\napp ") == "build a react app"

    def test_applies_nfkc(self) -> None:
        """Test NFKC normalization is applied to the prompt."""
        # Full-width letters fold to ASCII
        assert normalize_prompt("ＲＥＡＣＴ") == "react"

    def test_non_string_is_empty(self) -> None:
        """Test non string is empty."""
        assert normalize_prompt(None) == ""
        assert normalize_prompt(42) == ""


class TestCanonicalizeOptions:
    def test_sorted_and_request_scoped_keys_dropped(self) -> None:
        """Test sorted and request scoped keys dropped."""
        canonical = canonicalize_options(
            {"b": 1, "a": 2, "use_cache": False, "request_id": "r-1"}
        )
        assert list(canonical) == ["a", "b"]

    def test_paths_become_posix(self) -> None:
        """Test paths become posix."""
        canonical = canonicalize_options({"project_root": Path("/srv/app")})
        assert canonical["project_root"] == "/srv/app"

    def test_unserializable_values_become_empty(self) -> None:
        """Test unserializable values become empty."""
        canonical = canonicalize_options(
            {"none": None, "nan": float("nan"), "obj": object()}
        )
        assert canonical == {"nan": "", "none": "", "obj": ""}

    def test_dataclass_options(self) -> None:
        """Test dataclass options."""
        @dataclass
        class Options:
            max_tokens: int = 100
            use_cache: bool = True

        assert canonicalize_options(Options()) == {"max_tokens": 100}

    def test_none_and_garbage(self) -> None:
        """Test None and unparseable values."""
        assert canonicalize_options(None) == {}
        assert canonicalize_options("not options") == {}


class TestFingerprint:
    def test_is_sha256_hex(self) -> None:
        """Test the key is a SHA-256 hex digest."""
        key = fingerprint("Build a React app")
        assert len(key) == 64
        int(key, 16)

    def test_deterministic(self) -> None:
        """Test the same input always yields the same key."""
        options = {"max_tokens": 500}
        assert fingerprint("a prompt", options, ["react"]) == fingerprint(
            "a prompt", options, ["react"]
        )

    def test_trivial_prompt_differences_share_key(self) -> None:
        """Test trivial prompt differences share key."""
        assert fingerprint("Build a React app") == fingerprint("  build a   react APP\n")

    def test_framework_order_and_case_ignored(self) -> None:
        """Test framework order and case ignored."""
        assert fingerprint("p", None, ["react", "postgresql"]) == fingerprint(
            "p", None, ["PostgreSQL", "React", "react"]
        )

    def test_different_frameworks_differ(self) -> None:
        """Test different frameworks differ."""
        assert fingerprint("p", None, ["react"]) != fingerprint("p", None, ["vue"])

    def test_different_prompts_differ(self) -> None:
        """Test different prompts differ."""
        assert fingerprint("build a form") != fingerprint("build a table")

    def test_options_affect_key(self) -> None:
        """Test options affect key."""
        assert fingerprint("p", {"max_tokens": 100}) != fingerprint(
            "p", {"max_tokens": 200}
        )

    def test_request_scoped_options_ignored(self) -> None:
        """Test request scoped options ignored."""
        assert fingerprint("p", EnhanceOptions(use_cache=True)) == fingerprint(
            "p", EnhanceOptions(use_cache=False, ttl_seconds=60)
        )

    def test_never_raises(self) -> None:
        """Test fingerprinting never raises on odd options."""
        class Exploding:
            def model_dump(self) -> dict:
                raise RuntimeError("boom")

        for prompt, options, frameworks in [
            (None, None, None),
            ("p", Exploding(), ["react"]),
            ("p", {"x": float("inf")}, [None, 3, "react"]),
            ("p", {"nested": {"deep": [object()]}}, "react"),
        ]:
            assert len(fingerprint(prompt, options, frameworks)) == 64

    def test_stable_across_processes(self) -> None:
        """Keys must not depend on hash randomization."""
        code = (
            "from enrich.fingerprint import fingerprint;"
            "print(fingerprint('Build a React app', {'max_tokens': 10, 'tags': {'b', 'a'}},"
            " ['vue', 'react']))"
        )
        outputs = set()
        for seed in ("1", "2"):
            env = dict(os.environ, PYTHONHASHSEED=seed)
            completed = subprocess.run(
                [sys.executable, "-c", code],
                capture_output=True,
                text=True,
                env=env,
                check=True,
            )
            outputs.add(completed.stdout.strip())

        assert outputs == {
            fingerprint("Build a React app", {"max_tokens": 10, "tags": {"a", "b"}}, ["react", "vue"])
        }
