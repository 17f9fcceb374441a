from __future__ import annotations

import io
import json
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from taskexport.app.tasks import export
from taskexport.domain.tasks import TaskCollection, TaskRecord

_field_name = st.text(alphabet=st.characters(min_codepoint=97, max_codepoint=122), min_size=1, max_size=8)
_scalar = (
    st.none()
    | st.booleans()
    | st.integers(min_value=-(10**9), max_value=10**9)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(alphabet=st.characters(blacklist_categories=("Cs",)), max_size=20)
)
_value = st.recursive(
    _scalar,
    lambda children: st.lists(children, max_size=3) | st.dictionaries(_field_name, children, max_size=3),
    max_leaves=8,
)
_attributes = st.dictionaries(_field_name, _value, max_size=6)


@settings(max_examples=50, deadline=None)
@given(rows=st.lists(_attributes, max_size=8))
def test_export_mirrors_every_record_in_order(rows: list[dict[str, object]]) -> None:
    collection = TaskCollection(tasks=[TaskRecord(dict(row)) for row in rows])
    with tempfile.TemporaryDirectory() as tmp:
        target = Path(tmp) / "file.json"

        result = export(collection, target, stream=io.StringIO())
        content = target.read_text(encoding="utf-8")

    decoded = json.loads(content)
    assert result.count == len(rows)
    assert decoded == rows
    assert [list(entry) for entry in decoded] == [list(row) for row in rows]
    assert json.dumps(decoded, ensure_ascii=False, indent=2) == content


@settings(max_examples=25, deadline=None)
@given(rows=st.lists(_attributes, max_size=5))
def test_export_is_idempotent(rows: list[dict[str, object]]) -> None:
    collection = TaskCollection(tasks=[TaskRecord(dict(row)) for row in rows])
    with tempfile.TemporaryDirectory() as tmp:
        target = Path(tmp) / "file.json"
        export(collection, target, stream=io.StringIO())
        first = target.read_bytes()
        export(collection, target, stream=io.StringIO())

        assert target.read_bytes() == first
