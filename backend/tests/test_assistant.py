"""
Tests for assistant.py - whole chat turns without storage.
"""
import asyncio
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from assistant import (
    APOLOGY,
    GENERIC_REPLY,
    draft_from_payload,
    handle_message,
    respond,
)
from conflicts import find_conflicts
from llm import GenerationError
from models import DialogueState, Priority


@pytest.fixture
def existing(make_task):
    return [make_task(title="Standup", id="standup", day="2026-10-18", start="10:00", end="11:00")]


@pytest.fixture
def awaiting(existing, today):
    """Session after a conflicting request for 10:30-11:30 tomorrow."""
    turn = respond("Schedule a meeting tomorrow from 10:30 to 11:30am", DialogueState(), existing, today)
    return turn


class TestNewTasks:
    """Requests with no conflicts commit straight away."""

    def test_meeting_tomorrow(self, today):
        turn = respond("Create a meeting tomorrow at 2pm", DialogueState(), [], today)
        assert turn.commit.title == "Meeting"
        assert turn.commit.date == "2026-10-18"
        assert (turn.commit.start_time, turn.commit.end_time) == ("14:00", "15:00")
        assert turn.commit.priority == Priority.medium
        assert turn.state.awaiting_choice is False
        assert turn.messages[-1].startswith('Great! I\'ve created a task "Meeting" for Sunday, October 18, 2026')

    def test_workout_friday(self, today):
        turn = respond("Schedule workout on Friday at 6am", DialogueState(), [], today)
        assert turn.commit.title == "Workout"
        assert turn.commit.date == "2026-10-23"
        assert (turn.commit.start_time, turn.commit.end_time) == ("06:00", "07:00")

    def test_same_time_other_day_is_fine(self, existing, today):
        turn = respond("Create a meeting monday at 10am", DialogueState(), existing, today)
        assert turn.commit is not None

    def test_no_task(self, today):
        turn = respond("What's the weather?", DialogueState(), [], today)
        assert turn.commit is None
        assert turn.handled is False
        assert turn.messages == [GENERIC_REPLY]

    def test_input_state_is_not_mutated(self, existing, today):
        state = DialogueState()
        respond("Schedule a meeting tomorrow from 10:30 to 11:30am", state, existing, today)
        assert state.awaiting_choice is False


class TestConflictDialogue:
    """Conflict found, then a numbered choice."""

    def test_conflict_waits_for_choice(self, awaiting):
        assert awaiting.commit is None
        assert awaiting.state.awaiting_choice is True
        assert awaiting.state.pending.start_time == "10:30"
        assert '"Standup" (10:00 - 11:00)' in awaiting.messages[-1]

    def test_choice_3_keeps_overlap(self, awaiting, existing, today):
        turn = respond("3", awaiting.state, existing, today)
        assert (turn.commit.start_time, turn.commit.end_time) == ("10:30", "11:30")
        assert turn.state.awaiting_choice is False
        assert turn.state.pending is None

    def test_choice_1_moves_after_conflict(self, awaiting, existing, today):
        turn = respond("1", awaiting.state, existing, today)
        assert (turn.commit.start_time, turn.commit.end_time) == ("11:00", "12:00")
        assert turn.commit.date == "2026-10-18"
        assert turn.state.awaiting_choice is False

    def test_choice_2_falls_back_to_new_slot(self, awaiting, existing, today):
        turn = respond("option 2", awaiting.state, existing, today)
        assert (turn.commit.start_time, turn.commit.end_time) == ("11:00", "12:00")
        assert "isn't supported yet" in turn.messages[0]

    def test_other_reply_reprompts(self, awaiting, existing, today):
        turn = respond("hmm, not sure", awaiting.state, existing, today)
        assert turn.commit is None
        assert turn.state.awaiting_choice is True
        assert turn.messages[0].startswith("Please reply with 1, 2 or 3.")

    def test_cancel_drops_pending(self, awaiting, existing, today):
        turn = respond("cancel", awaiting.state, existing, today)
        assert turn.commit is None
        assert turn.state.awaiting_choice is False
        assert 'won\'t create "Meeting"' in turn.messages[0]

    def test_new_request_overrides_pending(self, awaiting, existing, today):
        turn = respond("Add lunch tomorrow at 1pm", awaiting.state, existing, today)
        assert turn.commit.title == "Lunch"
        assert turn.state.awaiting_choice is False
        assert 'dropped "Meeting"' in turn.messages[0]

    def test_new_conflicting_request_replaces_pending(self, awaiting, existing, today):
        turn = respond("Add lunch tomorrow at 10am", awaiting.state, existing, today)
        assert turn.commit is None
        assert turn.state.pending.title == "Lunch"

    def test_choice_1_clears_back_to_back_tasks(self, existing, make_task, today):
        tasks = existing + [make_task(title="Review", id="review", start="11:00", end="12:00")]
        waiting = respond("Schedule a meeting tomorrow from 10:30 to 11:30am", DialogueState(), tasks, today)
        assert waiting.state.awaiting_choice is True

        turn = respond("1", waiting.state, tasks, today)
        assert (turn.commit.start_time, turn.commit.end_time) == ("12:00", "13:00")
        assert find_conflicts(turn.commit, tasks) == []

    def test_choice_uses_current_tasks(self, awaiting, today):
        """The clashing task was deleted before the reply came in."""
        turn = respond("1", awaiting.state, [], today)
        assert (turn.commit.start_time, turn.commit.end_time) == ("10:30", "11:30")
        assert turn.state.awaiting_choice is False


class TestDraftFromPayload:
    """ACTION:CREATE payloads become drafts."""

    def test_full_payload(self, today):
        draft = draft_from_payload({
            "title": "Meeting", "date": "2026-10-20", "startTime": "14:00",
            "endTime": "15:30", "priority": "high", "description": "Quarterly",
        }, today)
        assert draft.title == "Meeting"
        assert draft.date == "2026-10-20"
        assert (draft.start_time, draft.end_time) == ("14:00", "15:30")
        assert draft.priority == Priority.high
        assert draft.description == "Quarterly"

    def test_defaults_for_missing_or_bad_fields(self, today, rng):
        draft = draft_from_payload({"date": "next week", "startTime": "2pm", "priority": "urgent"}, today, rng)
        assert draft.title == "New Task"
        assert draft.date == "2026-10-17"
        assert (draft.start_time, draft.end_time) == ("09:00", "10:00")
        assert draft.priority == Priority.medium

    def test_end_before_start(self, today):
        draft = draft_from_payload({"title": "X", "startTime": "15:00", "endTime": "14:00"}, today)
        assert draft.end_time == "16:00"

    def test_last_minute_start(self, today):
        draft = draft_from_payload({"title": "X", "startTime": "23:59"}, today)
        assert (draft.start_time, draft.end_time) == ("23:58", "23:59")


class TestGeneratorFallback:
    """Unrecognised utterances go to the text-generation service."""

    def run(self, text, tasks, today, reply=None, error=None, state=None):
        async def generator(message, task_list, day):
            if error:
                raise error
            return reply
        return asyncio.run(handle_message(text, state or DialogueState(), tasks, today, generator))

    def test_task_requests_skip_generator(self, today):
        async def generator(message, task_list, day):
            raise AssertionError("should not be called")
        turn = asyncio.run(handle_message("Create a meeting tomorrow at 2pm", DialogueState(), [], today, generator))
        assert turn.commit.title == "Meeting"

    def test_no_generator_gives_generic_reply(self, today):
        turn = asyncio.run(handle_message("What's the weather?", DialogueState(), [], today))
        assert turn.messages == [GENERIC_REPLY]

    def test_plain_reply(self, today):
        turn = self.run("What's the weather?", [], today, reply="I can't check the weather.")
        assert turn.messages == ["I can't check the weather."]
        assert turn.commit is None

    def test_malformed_payload_shows_text(self, today):
        turn = self.run("hmm", [], today, reply='ACTION:CREATE\n{"title": oops}\nSorry!')
        assert turn.messages == ['{"title": oops}\nSorry!']
        assert turn.commit is None

    def test_create_action(self, today):
        reply = 'On it.\nACTION:CREATE\n{"title": "Yoga", "date": "2026-10-19", "startTime": "07:00", "endTime": "08:00"}'
        turn = self.run("I'd like to stretch monday morning", [], today, reply=reply)
        assert turn.commit.title == "Yoga"
        assert turn.messages[0] == "On it."

    def test_create_action_checks_conflicts(self, existing, today):
        reply = 'ACTION:CREATE\n{"title": "Sync", "date": "2026-10-18", "startTime": "10:00", "endTime": "10:30"}'
        turn = self.run("sync with Ana", existing, today, reply=reply)
        assert turn.commit is None
        assert turn.state.awaiting_choice is True

    def test_edit_action(self, existing, today):
        reply = 'ACTION:EDIT\n{"taskId": "standup", "changes": {"startTime": "09:00", "endTime": "09:30"}}'
        turn = self.run("move standup earlier", existing, today, reply=reply)
        assert turn.update_id == "standup"
        assert turn.changes == {"start_time": "09:00", "end_time": "09:30"}

    def test_edit_action_warns_about_overlap(self, existing, make_task, today):
        tasks = existing + [make_task(title="Review", id="review", start="12:00", end="13:00")]
        reply = 'ACTION:EDIT\n{"taskId": "review", "changes": {"startTime": "10:30"}}'
        turn = self.run("review at 10:30", tasks, today, reply=reply)
        assert turn.update_id == "review"
        assert 'overlaps with "Standup"' in turn.messages[-1]

    def test_edit_bad_changes(self, existing, today):
        reply = 'ACTION:EDIT\n{"taskId": "standup", "changes": {"startTime": "9am"}}'
        turn = self.run("move standup", existing, today, reply=reply)
        assert turn.update_id is None

    def test_edit_start_after_end(self, existing, today):
        reply = 'ACTION:EDIT\n{"taskId": "standup", "changes": {"startTime": "16:00"}}'
        turn = self.run("move standup to 4pm", existing, today, reply=reply)
        assert turn.update_id is None
        assert "has to end after it starts" in turn.messages[-1]

    def test_edit_reversed_range(self, existing, today):
        reply = 'ACTION:EDIT\n{"taskId": "standup", "changes": {"startTime": "22:00", "endTime": "01:00"}}'
        turn = self.run("standup overnight", existing, today, reply=reply)
        assert turn.update_id is None

    def test_delete_action(self, existing, today):
        turn = self.run("drop standup", existing, today, reply='ACTION:DELETE\n{"taskId": "standup"}')
        assert turn.delete_id == "standup"
        assert turn.messages == ['Deleted "Standup".']

    def test_unknown_task(self, existing, today):
        turn = self.run("drop it", existing, today, reply='ACTION:DELETE\n{"taskId": "nope"}')
        assert turn.delete_id is None
        assert turn.messages == ["I couldn't find that task."]

    def test_generation_error_apologises(self, today):
        turn = self.run("What's the weather?", [], today, error=GenerationError("down"))
        assert turn.messages == [APOLOGY]
        assert turn.commit is None
