from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path

from vacancy_outreach.core.config import DispatchConfig
from vacancy_outreach.schemas.posts import ChannelPost, Identity
from vacancy_outreach.services.channel_source import ChannelSourceError
from vacancy_outreach.services.dispatcher import OutreachDispatcher, render_reply_template, resolve_targets
from vacancy_outreach.services.reply import ReplyContext, ReplySynthesizer
from vacancy_outreach.services.store import InMemoryVacancyStore

EXCLUDED = frozenset({"@devops_jobs"})


class FakeSource:
    def __init__(self, *, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.sent: list[tuple[str, str]] = []
        self.files: list[tuple[str, str, str | None]] = []

    async def resolve_identity(self, ref: str) -> Identity:
        return Identity(numeric_id=str(abs(hash(ref)) % 10_000), username=ref.lstrip("@"))

    async def send_message(self, identity: Identity, text: str) -> None:
        if identity.handle in self.failing:
            raise ChannelSourceError("PEER_FLOOD")
        self.sent.append((identity.handle or identity.numeric_id, text))

    async def send_file(self, identity: Identity, path: str, *, caption: str | None = None) -> None:
        self.files.append((identity.handle or identity.numeric_id, path, caption))


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _post(text: str, post_id: int = 1) -> ChannelPost:
    return ChannelPost(
        channel_ref="1001",
        post_id=post_id,
        raw_text=text,
        published_at=datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc),
    )


async def _stored(store: InMemoryVacancyStore, post: ChannelPost) -> None:
    await store.create_vacancy(
        channel_id="1001",
        post_id=post.post_id,
        full_text=post.raw_text,
        fields={"position": "DevOps"},
        created_at=post.published_at,
    )


def test_resolve_targets_merges_mentions_and_links_with_cap() -> None:
    text = "@alice @devops_jobs https://t.me/bob https://t.me/Alice @carol"

    assert resolve_targets(text, excluded_handles=EXCLUDED, cap=3) == ["@alice", "@carol", "@bob"]
    assert resolve_targets(text, excluded_handles=EXCLUDED, cap=2) == ["@alice", "@carol"]


def test_dry_run_logs_capped_targets_without_sending(caplog) -> None:
    post = _post("Пишите @alice, @bob или @carol")
    store = InMemoryVacancyStore()
    source = FakeSource()
    sleep = RecordingSleep()
    dispatcher = OutreachDispatcher(
        source,
        store,
        ReplySynthesizer(None),
        DispatchConfig(max_per_post=2, delay_seconds=1.5, dry_run=True),
        sleep=sleep,
    )

    async def run():
        await _stored(store, post)
        outcome = await dispatcher.dispatch(post, channel_id="1001", reply="Добрый день! Интересует вакансия.")
        return outcome, await store.find_by_post("1001", 1)

    with caplog.at_level("INFO"):
        outcome, record = asyncio.run(run())

    assert sleep.calls == [1.5, 1.5]
    assert outcome.dry_run == ["@alice", "@bob"]
    assert source.sent == []
    assert caplog.text.count("would DM") == 2
    assert record["status"] == "processed"
    assert record["dm_sent"] is False


def test_successful_send_marks_record_sent() -> None:
    post = _post("Пишите @alice")
    store = InMemoryVacancyStore()
    source = FakeSource()
    dispatcher = OutreachDispatcher(source, store, ReplySynthesizer(None), DispatchConfig(), sleep=RecordingSleep())

    async def run():
        await _stored(store, post)
        outcome = await dispatcher.dispatch(post, channel_id="1001", reply="Добрый день! Интересует вакансия.")
        return outcome, await store.find_by_post("1001", 1)

    outcome, record = asyncio.run(run())

    assert outcome.any_sent is True
    assert source.sent == [("@alice", "Добрый день! Интересует вакансия.")]
    assert record["status"] == "sent"
    assert record["dm_sent"] is True


def test_target_failure_does_not_abort_loop() -> None:
    post = _post("@alice @bob")
    store = InMemoryVacancyStore()
    source = FakeSource(failing={"@alice"})
    dispatcher = OutreachDispatcher(source, store, ReplySynthesizer(None), DispatchConfig(), sleep=RecordingSleep())

    async def run():
        await _stored(store, post)
        return await dispatcher.dispatch(post, channel_id="1001", reply="Добрый день, интересно!")

    outcome = asyncio.run(run())

    assert outcome.failed == ["@alice"]
    assert outcome.sent == ["@bob"]


def test_on_the_fly_reply_only_for_contact_target_else_template() -> None:
    post = _post("Вакансия DevOps. Пишите @alice, вопросы @bob")
    store = InMemoryVacancyStore()
    source = FakeSource()
    dispatcher = OutreachDispatcher(
        source,
        store,
        ReplySynthesizer(None),
        DispatchConfig(reply_template="Интересно! {{MENTIONS}}"),
        sleep=RecordingSleep(),
    )

    async def run():
        await _stored(store, post)
        return await dispatcher.dispatch(
            post,
            channel_id="1001",
            reply_context=ReplyContext(position="DevOps", company="Acme"),
            contact="@Alice",
        )

    asyncio.run(run())

    messages = dict(source.sent)
    assert "Интересует вакансия DevOps в компании Acme" in messages["@alice"]
    assert messages["@bob"] == "Интересно! @alice, @bob"


def test_targets_without_any_reply_text_are_skipped() -> None:
    post = _post("@alice")
    store = InMemoryVacancyStore()
    source = FakeSource()
    dispatcher = OutreachDispatcher(source, store, ReplySynthesizer(None), DispatchConfig(), sleep=RecordingSleep())

    outcome = asyncio.run(dispatcher.dispatch(post, channel_id="1001"))

    assert outcome.skipped == ["@alice"]
    assert source.sent == []


def test_render_reply_template_placeholders() -> None:
    text = "Пишите @alice https://example.com/job"

    rendered = render_reply_template("{{MENTIONS}} | {{LINKS}}", text)

    assert rendered == "@alice | https://example.com/job"
    assert render_reply_template("   ", text) is None


def test_send_cv_to_contact(tmp_path: Path) -> None:
    cv = tmp_path / "cv.pdf"
    cv.write_bytes(b"%PDF-1.4")
    source = FakeSource()
    dispatcher = OutreachDispatcher(
        source,
        InMemoryVacancyStore(),
        ReplySynthesizer(None),
        DispatchConfig(cv_file_path=str(cv), cv_caption="Моё резюме"),
    )

    ok, reason = asyncio.run(dispatcher.send_cv_to_contact("@alice"))

    assert (ok, reason) == (True, "sent")
    assert source.files == [("@alice", str(cv), "Моё резюме")]


def test_send_cv_without_configured_file() -> None:
    dispatcher = OutreachDispatcher(FakeSource(), InMemoryVacancyStore(), ReplySynthesizer(None), DispatchConfig())

    ok, reason = asyncio.run(dispatcher.send_cv_to_contact("@alice"))

    assert ok is False
    assert "CV_FILE_PATH" in reason
