"""Unit tests for the deterministic embedding generator."""

import math
import os
import subprocess
import sys
from types import SimpleNamespace

import pytest

from standards_helper.core.exceptions import EmptyInputError
from standards_helper.services.embedding_service import (
    DEFAULT_DIMENSION,
    EmbeddingGenerator,
    build_standard_text,
)


def _norm(vector: list[float]) -> float:
    return math.sqrt(sum(v * v for v in vector))


@pytest.mark.unit
class TestEmbed:
    def test_default_dimension(self) -> None:
        vector = EmbeddingGenerator().embed("Prefer composition over inheritance")
        assert DEFAULT_DIMENSION == 384
        assert len(vector) == 384

    def test_deterministic_across_calls_and_instances(self) -> None:
        text = "Write docstrings for public modules"
        first = EmbeddingGenerator().embed(text)
        assert first == EmbeddingGenerator().embed(text)
        assert first == EmbeddingGenerator().embed(text)

    def test_deterministic_across_processes(self) -> None:
        """String hashing is salted per process; vectors must not depend on it."""
        text = "Avoid mutable default arguments"
        script = (
            "from standards_helper.services.embedding_service import EmbeddingGenerator;"
            f"print(repr(EmbeddingGenerator(16).embed({text!r})))"
        )
        out = subprocess.run(
            [sys.executable, "-c", script],
            capture_output=True,
            text=True,
            check=True,
            env={**_path_env(), "PYTHONHASHSEED": "random"},
        )
        assert eval(out.stdout) == EmbeddingGenerator(16).embed(text)

    @pytest.mark.parametrize(
        "text", ["a", "Use snake_case for functions", "ünïcødé ✓", "x" * 5000]
    )
    def test_unit_length(self, text: str) -> None:
        assert abs(_norm(EmbeddingGenerator().embed(text)) - 1.0) < 1e-5

    def test_values_within_unit_interval(self) -> None:
        vector = EmbeddingGenerator(64).embed("bounded")
        assert all(-1.0 <= v <= 1.0 for v in vector)

    def test_different_texts_differ(self) -> None:
        gen = EmbeddingGenerator(32)
        assert gen.embed("alpha") != gen.embed("beta")

    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    def test_blank_text_rejected(self, text: str) -> None:
        with pytest.raises(EmptyInputError):
            EmbeddingGenerator().embed(text)

    def test_invalid_dimension(self) -> None:
        with pytest.raises(ValueError):
            EmbeddingGenerator(0)


@pytest.mark.unit
class TestEmbedAll:
    def test_maps_each_distinct_text(self) -> None:
        gen = EmbeddingGenerator(16)
        result = gen.embed_all(["one", "two", "one"])
        assert set(result) == {"one", "two"}
        assert result["one"] == gen.embed("one")
        assert result["two"] == gen.embed("two")

    def test_empty_input(self) -> None:
        assert EmbeddingGenerator(16).embed_all([]) == {}

    def test_blank_member_rejected(self) -> None:
        with pytest.raises(EmptyInputError):
            EmbeddingGenerator(16).embed_all(["ok", " "])


@pytest.mark.unit
class TestBuildStandardText:
    def test_joins_title_description_and_tags(self) -> None:
        standard = SimpleNamespace(
            title="Naming", description="Use descriptive names", tags=["style", "python"]
        )
        assert build_standard_text(standard) == "Naming Use descriptive names style python"

    def test_handles_no_tags(self) -> None:
        standard = SimpleNamespace(title="Naming", description="Be clear", tags=[])
        assert build_standard_text(standard) == "Naming Be clear"


def _path_env() -> dict[str, str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in sys.path if p)
    return env
