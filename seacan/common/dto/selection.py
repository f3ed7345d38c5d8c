import re
from fnmatch import fnmatchcase
from functools import lru_cache
from typing import Optional, List, Iterable, Sequence, Pattern, TYPE_CHECKING

from pydantic import model_validator

from seacan.common.dto.base import BaseDTO
from seacan.common.dto.artifact import TargetDescriptor
from seacan.common.config.constants import (
    EXACT_FILTER_ARG,
    NameSpecKind,
    TargetKind,
    TypeSpecKind,
)

if TYPE_CHECKING:
    from seacan.common.dto.test_result import TestFn


@lru_cache(maxsize=256)
def compile_wildcard(pattern: str) -> Pattern:
    # Only `*` is special; everything else, `?` and brackets included, is literal.
    parts = re.split(r"(\*+)", pattern)
    regex = "".join(".*" if part.startswith("*") else re.escape(part) for part in parts if part)
    return re.compile(regex, re.DOTALL)


class NameSpec(BaseDTO):
    """Selects test and bench functions by name.

    ``exact`` and ``wildcard`` are case-sensitive and anchored at both ends;
    ``substring`` mirrors libtest's default filter; ``any`` matches all.
    """

    kind: NameSpecKind
    value: str = ""

    @model_validator(mode="after")
    def validate_value(self) -> "NameSpec":
        if self.kind == NameSpecKind.ANY:
            if self.value:
                raise ValueError("NameSpec.any() does not take a value")
        elif not self.value:
            raise ValueError(f"NameSpec.{self.kind.value}() requires a non-empty value")
        return self

    @classmethod
    def exact(cls, name: str) -> "NameSpec":
        return cls(kind=NameSpecKind.EXACT, value=name)

    @classmethod
    def wildcard(cls, pattern: str) -> "NameSpec":
        return cls(kind=NameSpecKind.WILDCARD, value=pattern)

    @classmethod
    def substring(cls, fragment: str) -> "NameSpec":
        return cls(kind=NameSpecKind.SUBSTRING, value=fragment)

    @classmethod
    def any(cls) -> "NameSpec":
        return cls(kind=NameSpecKind.ANY)

    def matches(self, name: str) -> bool:
        if self.kind == NameSpecKind.ANY:
            return True
        if self.kind == NameSpecKind.EXACT:
            return name == self.value
        if self.kind == NameSpecKind.SUBSTRING:
            return self.value in name
        if self.kind == NameSpecKind.WILDCARD:
            return compile_wildcard(self.value).fullmatch(name) is not None
        raise ValueError(f"Unsupported name spec kind: {self.kind}")

    def filter(self, tests: Iterable["TestFn"]) -> List["TestFn"]:
        return [test for test in tests if self.matches(test.name)]

    def run_args(self, matched: Sequence["TestFn"] = ()) -> List[str]:
        if self.kind == NameSpecKind.ANY:
            return []
        if self.kind == NameSpecKind.EXACT:
            return [EXACT_FILTER_ARG, self.value]
        if self.kind == NameSpecKind.SUBSTRING:
            return [self.value]
        if self.kind == NameSpecKind.WILDCARD:
            # libtest has no glob filter; name the matches explicitly. A literal
            # pattern containing `*` can never equal a Rust path, so it selects
            # nothing when nothing matched.
            if matched and "*" in self.value:
                return [EXACT_FILTER_ARG, *(test.name for test in matched)]
            return [EXACT_FILTER_ARG, self.value]
        raise ValueError(f"Unsupported name spec kind: {self.kind}")

    def __str__(self) -> str:
        if self.kind == NameSpecKind.ANY:
            return "any"
        return f"{self.kind.value}({self.value!r})"


_TYPE_SPEC_TARGETS = {
    TypeSpecKind.LIB: frozenset({TargetKind.LIB}),
    TypeSpecKind.BIN: frozenset({TargetKind.BIN}),
    TypeSpecKind.EXAMPLE: frozenset({TargetKind.EXAMPLE}),
    TypeSpecKind.UNIT: frozenset({TargetKind.LIB, TargetKind.BIN, TargetKind.EXAMPLE}),
    TypeSpecKind.INTEGRATION: frozenset({TargetKind.TEST}),
    TypeSpecKind.BENCH: frozenset({TargetKind.BENCH}),
    TypeSpecKind.DOC: frozenset(),
    TypeSpecKind.ALL: frozenset({
        TargetKind.LIB,
        TargetKind.BIN,
        TargetKind.EXAMPLE,
        TargetKind.TEST,
        TargetKind.BENCH,
    }),
}

_UNPATTERNED_KINDS = frozenset({TypeSpecKind.LIB, TypeSpecKind.DOC, TypeSpecKind.ALL})


class TypeSpec(BaseDTO):
    """Selects which test artifacts to build and introspect.

    ``pattern`` is a Cargo-style glob over the target name (``frob_*``);
    ``None`` selects every target of the kind.
    """

    kind: TypeSpecKind
    pattern: Optional[str] = None

    @model_validator(mode="after")
    def validate_pattern(self) -> "TypeSpec":
        if self.kind in _UNPATTERNED_KINDS and self.pattern is not None:
            raise ValueError(f"TypeSpec.{self.kind.value} does not take a pattern")
        if self.pattern is not None and not self.pattern:
            raise ValueError("TypeSpec pattern must not be empty")
        return self

    @classmethod
    def lib(cls) -> "TypeSpec":
        return cls(kind=TypeSpecKind.LIB)

    @classmethod
    def bin(cls, name: str) -> "TypeSpec":
        return cls(kind=TypeSpecKind.BIN, pattern=name)

    @classmethod
    def bins(cls) -> "TypeSpec":
        return cls(kind=TypeSpecKind.BIN)

    @classmethod
    def example(cls, name: str) -> "TypeSpec":
        return cls(kind=TypeSpecKind.EXAMPLE, pattern=name)

    @classmethod
    def examples(cls) -> "TypeSpec":
        return cls(kind=TypeSpecKind.EXAMPLE)

    @classmethod
    def integration(cls, pattern: str) -> "TypeSpec":
        return cls(kind=TypeSpecKind.INTEGRATION, pattern=pattern)

    @classmethod
    def integrations(cls) -> "TypeSpec":
        return cls(kind=TypeSpecKind.INTEGRATION)

    @classmethod
    def bench(cls, pattern: str) -> "TypeSpec":
        return cls(kind=TypeSpecKind.BENCH, pattern=pattern)

    @classmethod
    def benches(cls) -> "TypeSpec":
        return cls(kind=TypeSpecKind.BENCH)

    @classmethod
    def unit_tests(cls, pattern: Optional[str] = None) -> "TypeSpec":
        return cls(kind=TypeSpecKind.UNIT, pattern=pattern)

    @classmethod
    def doc(cls) -> "TypeSpec":
        return cls(kind=TypeSpecKind.DOC)

    @classmethod
    def all(cls) -> "TypeSpec":
        return cls(kind=TypeSpecKind.ALL)

    @property
    def target_kinds(self) -> frozenset:
        return _TYPE_SPEC_TARGETS[self.kind]

    def matches(self, target: TargetDescriptor) -> bool:
        if target.target_kind not in self.target_kinds:
            return False
        if self.pattern is None:
            return True
        return fnmatchcase(target.name, self.pattern)

    def cargo_args(self) -> List[str]:
        if self.kind == TypeSpecKind.LIB:
            return ["--lib"]
        if self.kind == TypeSpecKind.BIN:
            return ["--bin", self.pattern] if self.pattern else ["--bins"]
        if self.kind == TypeSpecKind.EXAMPLE:
            return ["--example", self.pattern] if self.pattern else ["--examples"]
        if self.kind == TypeSpecKind.INTEGRATION:
            return ["--test", self.pattern or "*"]
        if self.kind == TypeSpecKind.BENCH:
            return ["--bench", self.pattern] if self.pattern else ["--benches"]
        if self.kind == TypeSpecKind.UNIT:
            # --lib is rejected for packages without one; --all-targets only
            # builds what exists and matches() narrows it down.
            return ["--all-targets"]
        if self.kind == TypeSpecKind.DOC:
            return ["--doc"]
        if self.kind == TypeSpecKind.ALL:
            return []
        raise ValueError(f"Unsupported type spec kind: {self.kind}")

    def __str__(self) -> str:
        if self.pattern is None:
            return self.kind.value
        return f"{self.kind.value}({self.pattern!r})"
