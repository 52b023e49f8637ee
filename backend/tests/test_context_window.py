import asyncio

from context_window import bound_context, build_context, render_transcript
from errors import StoreUnavailable
from schemas import ContextEntry
from store import ChatStore


def test_context_holds_window_plus_new_message(seed, session_factory):
    alice = seed.human("Alice")
    nova = seed.bot("Nova")
    channel = seed.channel([alice, nova])
    for i in range(15):
        seed.message(channel, nova if i % 2 == 0 else alice, f"msg {i}")
    new = seed.message(channel, alice, "newest")

    context = asyncio.run(build_context(ChatStore(session_factory), channel.id, new, window_size=10))

    assert len(context) == 11
    assert [e.content for e in context[:-1]] == [f"msg {i}" for i in range(5, 15)]
    assert context[-1] == ContextEntry(sender_name="Alice", content="newest", is_bot=False)
    assert context[-2].is_bot is True
    assert context[-2].sender_name == "Nova"


def test_short_history_is_returned_whole(seed, session_factory):
    alice = seed.human("Alice")
    channel = seed.channel([alice, seed.human("Bob")])
    seed.message(channel, alice, "first")
    new = seed.message(channel, alice, "second")

    context = asyncio.run(build_context(ChatStore(session_factory), channel.id, new, window_size=10))

    assert [e.content for e in context] == ["first", "second"]


def test_messages_after_the_new_one_are_excluded(seed, session_factory):
    alice = seed.human("Alice")
    channel = seed.channel([alice, seed.human("Bob")])
    seed.message(channel, alice, "before")
    new = seed.message(channel, alice, "trigger")
    seed.message(channel, alice, "after")

    context = asyncio.run(build_context(ChatStore(session_factory), channel.id, new))

    assert [e.content for e in context] == ["before", "trigger"]


def test_other_channels_do_not_leak_in(seed, session_factory):
    alice = seed.human("Alice")
    bob = seed.human("Bob")
    one = seed.channel([alice, bob], name="one")
    two = seed.channel([alice, bob], name="two")
    seed.message(two, bob, "elsewhere")
    new = seed.message(one, alice, "here")

    context = asyncio.run(build_context(ChatStore(session_factory), one.id, new))

    assert [e.content for e in context] == ["here"]


def test_zero_window_keeps_only_new_message(seed, session_factory):
    alice = seed.human("Alice")
    channel = seed.channel([alice, seed.human("Bob")])
    seed.message(channel, alice, "old")
    new = seed.message(channel, alice, "new")

    context = asyncio.run(build_context(ChatStore(session_factory), channel.id, new, window_size=0))

    assert [e.content for e in context] == ["new"]


def test_unavailable_store_degrades_to_new_message_only(seed, session_factory):
    alice = seed.human("Alice")
    channel = seed.channel([alice, seed.human("Bob")])
    new = seed.message(channel, alice, "hello?")

    class BrokenStore:
        async def get_recent_messages(self, channel_id, limit, before_id=None):
            raise StoreUnavailable("db down")

    context = asyncio.run(build_context(BrokenStore(), channel.id, new))

    assert [e.content for e in context] == ["hello?"]


def test_bound_context_trims_oldest_entries():
    entries = [ContextEntry(sender_name="A", content=str(i)) for i in range(20)]
    bounded = bound_context(entries, window_size=10)
    assert len(bounded) == 11
    assert bounded[0].content == "9"
    assert bounded[-1].content == "19"


def test_render_transcript_marks_bots():
    entries = [
        ContextEntry(sender_name="Alice", content="hi"),
        ContextEntry(sender_name="Nova", content="hello", is_bot=True),
    ]
    assert render_transcript(entries) == "Alice: hi\nNova (AI Bot): hello"
    assert render_transcript(entries, mark_bots=False) == "Alice: hi\nNova: hello"
