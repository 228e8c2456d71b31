from __future__ import annotations

from pathlib import Path

from faultline.events import FailureEvent, Severity
from faultline.render import RichRenderer, relative_path


def _chained_failure() -> FailureEvent:
    def load(rows: list[int]) -> None:
        label = "z" * 500  # noqa: F841
        try:
            {}["missing"]
        except KeyError as exc:
            raise RuntimeError("could not load") from exc

    try:
        load(list(range(1000)))
    except RuntimeError as exc:
        return FailureEvent.from_exception(exc, fatal_at_origin=True, capture_locals=True)
    raise AssertionError("unreachable")


def test_relative_path_inside_and_outside_root(tmp_path: Path) -> None:
    inside = tmp_path / "pkg" / "mod.py"
    assert relative_path(str(inside), tmp_path) == str(Path("pkg") / "mod.py")
    assert relative_path("/elsewhere/mod.py", tmp_path / "pkg") == "/elsewhere/mod.py"
    assert relative_path("<string>", None) == "<string>"


def test_plain_text_has_title_location_and_causes() -> None:
    text = RichRenderer(width=200).render_plain_text(_chained_failure())

    assert "Uncaught exception" in text
    assert "RuntimeError: could not load" in text
    assert "Caused by KeyError" in text
    assert "locals of load" in text


def test_captured_values_are_bounded() -> None:
    text = RichRenderer(width=200, max_items=5, max_string=10).render_plain_text(_chained_failure())

    assert "z" * 11 not in text


def test_condition_title_and_relative_location(tmp_path: Path) -> None:
    event = FailureEvent.condition(Severity.USER_WARNING, "careful", str(tmp_path / "app" / "views.py"), 12)

    text = RichRenderer(project_root=tmp_path, width=200).render_plain_text(event)

    assert "User Warning" in text
    assert "E_USER_WARNING: careful" in text
    assert f"{Path('app') / 'views.py'}:12" in text
    assert str(tmp_path) not in text


def test_html_export_is_a_document() -> None:
    event = FailureEvent.condition(Severity.ERROR, "fatal", "app.py", 1, context={"request_id": "r-1"})

    html = RichRenderer().render_html(event)

    assert html.lstrip().lower().startswith("<!doctype html>")
    assert "r-1" in html
