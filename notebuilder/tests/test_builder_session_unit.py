import json
import time

import pytest

from notebuilder.note.builder import CopiedIndicator, EditOverlay, NoteBuilderSession, is_valid_case_id

APPROVED = "Approved for amount *. |"
OPENED = "Case * opened for card review. |"
ESCALATED = "Escalated to senior reviewer. |"


def _session(**kwargs) -> NoteBuilderSession:
    return NoteBuilderSession(work_type_id="affirm-card", **kwargs)


def test_new_session_starts_empty_and_viewing() -> None:
    session = _session()
    assert session.generated_notes() == ""
    assert session.displayed_notes() == ""
    assert session.overlay.state == "viewing"
    assert session.case_id == ""
    assert session.can_edit is False
    assert session.can_copy is False


def test_unknown_work_type_raises() -> None:
    with pytest.raises(ValueError, match="Unknown work_type_id"):
        NoteBuilderSession(work_type_id="does-not-exist")


def test_generated_notes_follow_section_order_and_case_id() -> None:
    session = _session()
    session.toggle_option("decision", APPROVED)
    session.toggle_option("identity", OPENED)
    assert session.set_case_id("12345") is True
    assert session.generated_notes() == "Case 12345 opened for card review. | Approved for amount 12345."


@pytest.mark.parametrize("raw", ["", "0", "000", "12345"])
def test_case_id_accepts_empty_or_digits(raw: str) -> None:
    session = _session()
    assert session.set_case_id(raw) is True
    assert session.case_id == raw


@pytest.mark.parametrize("raw", ["12a", " 12", "-1", "1.5", "١٢"])
def test_case_id_rejects_non_digits_without_changing_state(raw: str) -> None:
    session = _session()
    session.set_case_id("77")
    assert session.set_case_id(raw) is False
    assert session.case_id == "77"
    assert is_valid_case_id(raw) is False


def test_toggle_unknown_option_or_section_raises() -> None:
    session = _session()
    with pytest.raises(ValueError, match="Unknown section_id"):
        session.toggle_option("nope", APPROVED)
    with pytest.raises(ValueError, match="Unknown option"):
        session.toggle_option("decision", "Not in catalog")
    assert session.selections.as_dict() == {}


def test_switching_work_type_orphans_selections() -> None:
    session = _session()
    session.toggle_option("decision", APPROVED)
    session.select_work_type("chargeback")
    assert session.generated_notes() == ""
    assert session.selections.section_selections("decision") == [APPROVED]

    session.select_work_type("affirm-card")
    assert session.generated_notes() == "Approved for amount *."


def test_selections_survive_section_navigation() -> None:
    session = _session()
    session.select_section("decision")
    session.toggle_option("decision", ESCALATED)
    session.select_section("identity")
    assert session.current_section is not None and session.current_section.id == "identity"
    assert session.generated_notes() == "Escalated to senior reviewer."


def test_select_section_validates_and_clears() -> None:
    session = _session()
    with pytest.raises(ValueError):
        session.select_section("missing")
    session.select_section("income")
    assert session.section_id == "income"
    assert session.select_section("") is None
    assert session.section_id == ""


def test_begin_edit_seeds_overlay_with_frozen_output() -> None:
    session = _session()
    session.toggle_option("decision", ESCALATED)
    assert session.begin_edit() is True
    assert session.overlay.content == "Escalated to senior reviewer."

    session.toggle_option("decision", APPROVED)
    assert session.overlay.content == "Escalated to senior reviewer."
    assert session.displayed_notes() == "Escalated to senior reviewer."


def test_begin_then_cancel_reverts_to_live_output() -> None:
    session = _session()
    session.toggle_option("decision", ESCALATED)
    session.begin_edit()
    session.update_edit("manual text")
    session.toggle_option("decision", APPROVED)
    assert session.cancel_edit() is True

    assert session.overlay.state == "viewing"
    assert session.overlay.content == ""
    assert session.displayed_notes() == session.generated_notes()
    assert session.displayed_notes() == "Escalated to senior reviewer. | Approved for amount *."


def test_saved_overlay_masks_further_selection_changes() -> None:
    session = _session()
    session.toggle_option("decision", ESCALATED)
    session.begin_edit()
    session.update_edit("My own note")
    assert session.save_edit() is True

    session.toggle_option("decision", APPROVED)
    assert session.displayed_notes() == "My own note"
    assert session.generated_notes() == "Escalated to senior reviewer. | Approved for amount *."


def test_empty_save_reverts_to_live_output() -> None:
    session = _session()
    session.toggle_option("decision", ESCALATED)
    session.begin_edit()
    session.update_edit("")
    session.save_edit()
    assert session.displayed_notes() == "Escalated to senior reviewer."


def test_begin_edit_keeps_existing_overlay() -> None:
    session = _session()
    session.toggle_option("decision", ESCALATED)
    session.begin_edit()
    session.update_edit("Kept text")
    session.save_edit()
    session.toggle_option("decision", APPROVED)

    session.begin_edit()
    assert session.overlay.content == "Kept text"


def test_reset_restores_initial_state_from_editing() -> None:
    session = _session()
    session.select_section("decision")
    session.toggle_option("decision", APPROVED)
    session.set_case_id("42")
    session.begin_edit()
    session.update_edit("draft")

    session.reset()

    assert session.selections.as_dict() == {}
    assert session.case_id == ""
    assert session.section_id == ""
    assert session.overlay.state == "viewing"
    assert session.overlay.content == ""
    assert session.displayed_notes() == ""
    assert session.work_type.id == "affirm-card"


def test_overlay_transitions_are_noops_from_wrong_state() -> None:
    overlay = EditOverlay()
    assert overlay.save() is False
    assert overlay.cancel() is False
    assert overlay.update("x") is False
    assert overlay.begin_edit("seed") is True
    assert overlay.begin_edit("other") is False
    assert overlay.content == "seed"


def test_copy_requires_displayed_text_and_writer_success() -> None:
    session = _session(copied_reset_sec=5.0)
    written: list[str] = []

    assert session.copy(lambda text: written.append(text) or True) is False
    assert written == []

    session.toggle_option("decision", ESCALATED)
    assert session.copy(lambda _text: False) is False
    assert session.copied.copied is False

    assert session.copy(lambda text: written.append(text) or True) is True
    assert written == ["Escalated to senior reviewer."]
    assert session.copied.copied is True
    session.close()
    assert session.copied.copied is False


def test_copied_indicator_resets_after_delay() -> None:
    indicator = CopiedIndicator(reset_after_sec=0.05)
    indicator.trigger()
    assert indicator.copied is True
    deadline = time.time() + 2.0
    while indicator.copied and time.time() < deadline:
        time.sleep(0.01)
    assert indicator.copied is False


def test_copied_indicator_retrigger_restarts_timer() -> None:
    indicator = CopiedIndicator(reset_after_sec=0.2)
    indicator.trigger()
    time.sleep(0.15)
    indicator.trigger()
    time.sleep(0.1)
    assert indicator.copied is True
    indicator.cancel()
    assert indicator.copied is False


def test_snapshot_reports_section_view_and_counts() -> None:
    session = _session()
    session.select_section("decision")
    session.toggle_option("decision", APPROVED)
    snap = session.snapshot()

    assert snap["section_counts"]["decision"] == 1
    assert snap["section_counts"]["identity"] == 0
    view = snap["section"]
    assert view["id"] == "decision"
    assert [row["text"] for row in view["uncategorized"]] == [ESCALATED]
    assert [group["category"] for group in view["categories"]] == ["Approve", "Decline"]
    approve_rows = view["categories"][0]["options"]
    assert approve_rows[0] == {"text": APPROVED, "checked": True}
    assert snap["can_edit"] is True
    assert snap["edit_state"] == "viewing"


def test_section_view_unchecks_option_after_toggle_off() -> None:
    session = _session()
    session.select_section("decision")
    session.toggle_option("decision", APPROVED)
    session.toggle_option("decision", APPROVED)
    rows = session.section_view()["categories"][0]["options"]
    assert rows[0] == {"text": APPROVED, "checked": False}


def test_session_resolves_work_types_from_given_catalog_dir(tmp_path) -> None:
    payload = {
        "id": "custom",
        "name": "Custom",
        "sections": [{"id": "only", "title": "Only", "options": [{"text": "Hello *. |"}]}],
    }
    (tmp_path / "custom.json").write_text(json.dumps(payload), encoding="utf-8")
    session = NoteBuilderSession(work_type_id="custom", catalog_dir=tmp_path)
    session.toggle_option("only", "Hello *. |")
    assert session.generated_notes() == "Hello *."
    with pytest.raises(ValueError, match="Unknown work_type_id"):
        session.select_work_type("affirm-card")
