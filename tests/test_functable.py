"""
Function table tests: registration order and duplicate detection.
"""

import pytest

from silc.ast import Root
from silc.diagnostics import DuplicateDefinitionError, InternalInvariantError, Source
from silc.functable import FunctionTable
from silc.parser import parse_source


def build(text):
    src = Source.from_text(text, "test.sil")
    return FunctionTable.build(parse_source(src), src)


class TestFunctionTable:

    def test_distinct_names(self):
        table = build("extern fn puts(s: *u8) -> i32; fn a() {} fn b() {}")
        assert len(table) == 3
        assert list(table) == ["puts", "a", "b"]
        assert "a" in table
        assert table.get("missing") is None

    def test_entries_map_to_declarations(self):
        table = build("extern fn puts(s: *u8) -> i32; fn main() {}")
        names = {name: type(decl).__name__ for name, decl in table.items()}
        assert names == {"puts": "ExternFn", "main": "Fn"}

    @pytest.mark.parametrize("text", [
        "fn f() {} fn f() {}",
        "fn f() {} extern fn f();",
        "extern fn f(); fn f() {}",
        "extern fn f(); extern fn f(x: i32);",
    ])
    def test_duplicates_rejected(self, text):
        with pytest.raises(DuplicateDefinitionError) as exc:
            build(text)
        assert exc.value.name == "f"

    def test_second_occurrence_is_reported(self):
        with pytest.raises(DuplicateDefinitionError) as exc:
            build("fn f() {}\nfn g() {}\nfn f() {}")
        err = exc.value
        assert err.location == (3, 1)
        assert "1:1" in err.hint

    def test_empty_root(self):
        assert len(FunctionTable.build(Root())) == 0

    def test_rejects_non_declarations(self):
        table = FunctionTable()
        with pytest.raises(InternalInvariantError):
            table.register(object())
