from allie.errors import DownstreamCallFailed, InvalidSelection
from allie.history import Role
from allie.intent import (
    DeleteConfirmation,
    GeneralChat,
    ScheduleCommand,
    SportsQuery,
    WeatherQuery,
)
from allie.orchestrator import (
    CHAT_FAILED,
    DELETE_FAILED,
    INVALID_SELECTION,
    MISSING_EVENT_ID,
    SCHEDULE_FAILED,
    SPORTS_FAILED,
    WEATHER_FAILED,
    Reply,
    enumerate_options,
)
from allie.personality import PersonalityMode

OPTIONS = [
    {"id": "evt-1", "summary": "Dentist", "start": "2025-08-14T09:00"},
    {"id": "evt-2", "summary": "Team sync"},
    {"id": "evt-3", "title": "Gym"},
]


def _ask_delete(orchestrator, backend):
    backend.schedule_result = {"message": "Which event should I delete?", "options": OPTIONS}
    return orchestrator.handle(ScheduleCommand("delete my meeting", True), user_text="delete my meeting")


# ─── Dispatch ─────────────────────────────────────────────────────────────────

def test_weather(orchestrator, backend):
    reply = orchestrator.handle(WeatherQuery("Chicago"), user_text="weather in Chicago")
    assert backend.calls == [("weather", "Chicago")]
    assert reply.text == backend.weather_result


def test_weather_failure_apologises(orchestrator, backend):
    backend.fail.add("weather")
    reply = orchestrator.handle(WeatherQuery("Atlantis"), user_text="weather in Atlantis")
    assert reply.text == WEATHER_FAILED
    assert isinstance(reply.error, DownstreamCallFailed)


def test_sports(orchestrator, backend):
    reply = orchestrator.handle(SportsQuery("lakers", "scores"), user_text="lakers score")
    assert backend.calls == [("sports", "lakers", "scores")]
    assert reply.text == "Bulls 98 - Lakers 102"


def test_sports_failure_apologises(orchestrator, backend):
    backend.fail.add("sports")
    assert orchestrator.handle(SportsQuery("jets", "odds"), user_text="jets odds").text == SPORTS_FAILED


def test_general_chat_sends_prior_history_mode_and_language(orchestrator, backend, clock):
    orchestrator.handle(GeneralChat("hi"), user_text="hi")
    clock.now += 5
    orchestrator.mode = PersonalityMode.SASSY
    orchestrator.language = "es"
    orchestrator.handle(GeneralChat("how are you"), user_text="how are you")

    _, prompt, history, mode, language = backend.calls[-1]
    assert prompt == "how are you"
    assert [(t.role, t.content) for t in history] == [
        (Role.USER, "hi"),
        (Role.ASSISTANT, "Happy to help!"),
    ]
    assert mode == "sassy"
    assert language == "es"


def test_mode_argument_overrides_session_mode(orchestrator, backend):
    orchestrator.handle(GeneralChat("hi"), user_text="hi", mode=PersonalityMode.HUMOROUS)
    assert backend.calls[-1][3] == "humorous"


def test_chat_failure_apologises(orchestrator, backend):
    backend.fail.add("chat")
    assert orchestrator.handle(GeneralChat("hi"), user_text="hi").text == CHAT_FAILED


def test_schedule_add(orchestrator, backend):
    reply = orchestrator.handle(ScheduleCommand("remind me to stretch", False), user_text="remind me to stretch")
    assert backend.calls == [("schedule", "remind me to stretch", False)]
    assert reply.text == "Added to your calendar."
    assert reply.options is None
    assert orchestrator.pending_selection == []


def test_schedule_failure_apologises(orchestrator, backend):
    backend.fail.add("schedule")
    assert orchestrator.handle(ScheduleCommand("schedule lunch", False)).text == SCHEDULE_FAILED


# ─── History ──────────────────────────────────────────────────────────────────

def test_each_exchange_appends_user_then_assistant(orchestrator, clock):
    orchestrator.handle(WeatherQuery("Chicago"), user_text="weather in Chicago")
    turns = orchestrator.history.snapshot()
    assert [(t.role, t.content) for t in turns] == [
        (Role.USER, "weather in Chicago"),
        (Role.ASSISTANT, turns[1].content),
    ]
    assert turns[0].timestamp == turns[1].timestamp == clock.now


def test_apologies_are_recorded_too(orchestrator, backend):
    backend.fail.add("chat")
    orchestrator.handle(GeneralChat("hi"), user_text="hi")
    assert orchestrator.history.snapshot()[-1].content == CHAT_FAILED


# ─── Delete disambiguation ────────────────────────────────────────────────────

def test_delete_with_candidates_sets_pending_and_enumerates(orchestrator, backend):
    reply = _ask_delete(orchestrator, backend)
    assert backend.calls == [("schedule", "delete my meeting", True)]
    assert reply.options == OPTIONS
    assert orchestrator.pending_selection == OPTIONS
    assert reply.text == "Which event should I delete? 1) Dentist (2025-08-14T09:00) 2) Team sync 3) Gym"


def test_pending_is_paired_with_the_assistant_message_that_proposed_it(orchestrator, backend):
    reply = _ask_delete(orchestrator, backend)
    assert orchestrator.history.snapshot()[-1].content == reply.text


def test_confirm_valid_selection_deletes_and_clears(orchestrator, backend):
    _ask_delete(orchestrator, backend)
    reply = orchestrator.handle(DeleteConfirmation(1), user_text="2")
    assert backend.calls[-1] == ("delete", "evt-2")
    assert reply.text == "Event deleted."
    assert orchestrator.pending_selection == []


def test_confirm_without_service_message_says_deleted(orchestrator, backend):
    _ask_delete(orchestrator, backend)
    backend.delete_result = None
    assert orchestrator.handle(DeleteConfirmation(0), user_text="1").text == "Deleted."


def test_out_of_range_selection_is_invalid_and_clears(orchestrator, backend):
    _ask_delete(orchestrator, backend)
    reply = orchestrator.handle(DeleteConfirmation(5), user_text="6")
    assert reply.text == INVALID_SELECTION
    assert isinstance(reply.error, InvalidSelection)
    assert orchestrator.pending_selection == []
    assert ("delete", "evt-1") not in backend.calls


def test_zero_is_invalid(orchestrator, backend):
    _ask_delete(orchestrator, backend)
    assert orchestrator.handle(DeleteConfirmation(-1), user_text="0").text == INVALID_SELECTION


def test_selected_candidate_without_id(orchestrator, backend):
    backend.schedule_result = {"message": "Which one?", "options": [{"summary": "No id here"}]}
    orchestrator.handle(ScheduleCommand("remove it", True))
    assert orchestrator.handle(DeleteConfirmation(0), user_text="1").text == MISSING_EVENT_ID
    assert orchestrator.pending_selection == []


def test_delete_failure(orchestrator, backend):
    _ask_delete(orchestrator, backend)
    backend.fail.add("delete")
    assert orchestrator.handle(DeleteConfirmation(0), user_text="1").text == DELETE_FAILED
    assert orchestrator.pending_selection == []


def test_other_turn_discards_pending(orchestrator, backend):
    _ask_delete(orchestrator, backend)
    orchestrator.handle(GeneralChat("never mind"), user_text="never mind")
    assert orchestrator.pending_selection == []


def test_non_delete_schedule_options_do_not_set_pending(orchestrator, backend):
    backend.schedule_result = {"message": "Here you go.", "options": OPTIONS}
    reply = orchestrator.handle(ScheduleCommand("show schedule", False))
    assert reply.text == "Here you go."
    assert orchestrator.pending_selection == []


def test_respond_leaves_conversation_alone_until_recorded(orchestrator, backend):
    backend.schedule_result = {"message": "Which event should I delete?", "options": OPTIONS}
    reply = orchestrator.respond(ScheduleCommand("delete my meeting", True), "delete my meeting")
    assert reply.options == OPTIONS
    assert orchestrator.pending_selection == []
    assert len(orchestrator.history) == 0

    orchestrator.record("delete my meeting", reply)
    assert orchestrator.pending_selection == OPTIONS
    assert [t.content for t in orchestrator.history.snapshot()] == ["delete my meeting", reply.text]


def test_unrecorded_confirmation_keeps_pending(orchestrator, backend):
    _ask_delete(orchestrator, backend)
    orchestrator.respond(DeleteConfirmation(0), "1")
    assert orchestrator.pending_selection == OPTIONS


# ─── Speech text ──────────────────────────────────────────────────────────────

def test_spoken_text_strips_pictographs():
    assert Reply("Sunny today ☀️ 😎 enjoy!").spoken_text == "Sunny today enjoy!"


def test_enumerate_options_handles_nested_start():
    options = [{"id": 1, "summary": "Call", "start": {"dateTime": "2025-01-01T10:00"}}]
    assert enumerate_options("Pick one:", options) == "Pick one: 1) Call (2025-01-01T10:00)"
