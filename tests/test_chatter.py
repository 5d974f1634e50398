import requests
from berserk.exceptions import ApiError

from chatter import Chatter, Messages
from conftest import FakeApi


def write_config(tmp_path, text):
    p = tmp_path / "config.yml"
    p.write_text(text, encoding="utf-8")
    return str(p)


def test_missing_file_keeps_defaults(tmp_path):
    assert Messages.from_yaml(str(tmp_path / "absent.yml")) == Messages()


def test_present_keys_override_and_blank_disables(tmp_path):
    path = write_config(tmp_path, (
        "messages:\n"
        "  greeting: 'Hi {opponent}, {me} here'\n"
        "  goodbye: ''\n"
    ))
    m = Messages.from_yaml(path)
    assert m.greeting == "Hi {opponent}, {me} here"
    assert m.goodbye == ""
    assert m.greeting_spectators == ""


def test_greet_renders_and_posts_to_both_rooms():
    api = FakeApi()
    chatter = Chatter(api, me="HyperBot", min_interval=0,
                      messages=Messages(greeting="Hi {opponent}", greeting_spectators="{me} says hi"))
    chatter.greet("g1", "Foe")
    assert api.chats == [("g1", "player", "Hi Foe"), ("g1", "spectator", "HyperBot says hi")]


def test_blank_messages_are_not_sent():
    api = FakeApi()
    Chatter(api, min_interval=0, messages=Messages(goodbye="")).goodbye("g1", "Foe")
    assert api.chats == []


def test_bad_template_is_sent_as_is():
    api = FakeApi()
    Chatter(api, min_interval=0, messages=Messages(greeting="gl {nobody}")).greet("g1", "Foe")
    assert api.chats[0] == ("g1", "player", "gl {nobody}")


def test_long_text_is_cut():
    api = FakeApi()
    Chatter(api, min_interval=0, max_len=10, messages=Messages(greeting="x" * 50)).greet("g1", "Foe")
    assert len(api.chats[0][2]) == 10


def test_post_failure_is_swallowed():
    api = FakeApi()

    def down(*args):
        raise requests.ConnectionError("down")
    api.send_chat = down
    Chatter(api, min_interval=0).goodbye("g1", "Foe")


def test_api_error_is_swallowed():
    api = FakeApi()

    def unreachable(*args):
        raise ApiError(requests.ConnectionError("Failed to resolve 'lichess.org'"))
    api.send_chat = unreachable
    Chatter(api, min_interval=0).greet("g1", "Foe")


def test_each_game_is_greeted_once():
    api = FakeApi()
    chatter = Chatter(api, min_interval=0, messages=Messages(greeting="hi", goodbye=""))
    chatter.greet("g1", "Foe")
    chatter.greet("g1", "Foe")
    chatter.greet("g2", "Other")
    assert [c[0] for c in api.chats] == ["g1", "g2"]
