"""Property-based tests for the dispatch engine."""

import tempfile
from pathlib import Path
from unittest.mock import Mock

from hypothesis import given, settings
from hypothesis import strategies as st

from rss_mailer.config import SenderConfig
from rss_mailer.dispatch import DispatchEngine
from rss_mailer.gmail import SendError
from rss_mailer.ledger import DeliveryLedger
from rss_mailer.models import FeedItem

identities = st.builds(
    lambda slug: f"https://example.com/{slug}",
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", min_size=1, max_size=12),
)
recipient_lists = st.lists(
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=8),
    min_size=1,
    max_size=5,
)


def run_engine(tmp: str, feed_ids, recipients, failing=frozenset(), delivered=()):
    ledger_path = Path(tmp) / "URL_Log.txt"
    if delivered:
        ledger_path.write_text("".join(f"{i}\n" for i in delivered), encoding="utf-8")

    feed_source = Mock()
    feed_source.fetch.return_value = [
        FeedItem(identity=i, title=i, link=i, feed_url="https://example.com/feed")
        for i in feed_ids
    ]
    client = Mock()

    def send(from_name, from_address, to_name, to_address, subject, html_body):
        if to_address in failing:
            raise SendError(f"rejected {to_address}")

    client.send.side_effect = send

    engine = DispatchEngine(
        sender=SenderConfig(),
        feed_url="https://example.com/feed",
        recipients_value=";".join(f"{r}:{r}@example.com" for r in recipients),
        ledger=DeliveryLedger(str(ledger_path)),
        feed_source=feed_source,
        authenticate=lambda: client,
        reporter=Mock(),
    )
    outcome = engine.run()
    lines = ledger_path.read_text(encoding="utf-8").splitlines() if ledger_path.exists() else []
    return outcome, client, lines


class TestDispatchEngineProperties:
    """Property-based tests for DispatchEngine."""

    @settings(deadline=None, max_examples=50)
    @given(st.lists(identities, min_size=1, max_size=8, unique=True), recipient_lists)
    def test_delivered_identities_are_never_resent(self, feed_ids, recipients):
        """Items already in the ledger produce no send attempts."""
        with tempfile.TemporaryDirectory() as tmp:
            delivered = feed_ids[::2]
            outcome, client, _ = run_engine(tmp, feed_ids, recipients, delivered=delivered)

            sent_subjects = {c.args[4] for c in client.send.call_args_list}
            assert sent_subjects.isdisjoint(delivered)
            assert outcome.items_duplicate == len(delivered)

    @settings(deadline=None, max_examples=50)
    @given(
        st.lists(identities, min_size=1, max_size=6, unique=True),
        recipient_lists,
        st.data(),
    )
    def test_one_ledger_entry_per_new_item(self, feed_ids, recipients, data):
        """Exactly one entry per new item whatever the per-recipient outcome."""
        failing = data.draw(st.sets(st.sampled_from(recipients)))
        failing_addresses = {f"{r}@example.com" for r in failing}

        with tempfile.TemporaryDirectory() as tmp:
            outcome, _, lines = run_engine(tmp, feed_ids, recipients, failing_addresses)

            assert lines == feed_ids
            assert outcome.items_new == len(feed_ids)

    @settings(deadline=None, max_examples=50)
    @given(
        st.lists(identities, min_size=1, max_size=5, unique=True),
        recipient_lists,
        st.data(),
    )
    def test_every_recipient_attempted_despite_failures(self, feed_ids, recipients, data):
        """A failing recipient never prevents attempts to the others."""
        failing = data.draw(st.sets(st.sampled_from(recipients)))
        failing_addresses = {f"{r}@example.com" for r in failing}

        with tempfile.TemporaryDirectory() as tmp:
            outcome, client, _ = run_engine(tmp, feed_ids, recipients, failing_addresses)

            expected = len(feed_ids) * len(recipients)
            failed = len(feed_ids) * sum(1 for r in recipients if r in failing)
            assert client.send.call_count == expected
            assert outcome.sends_attempted == expected
            assert outcome.sends_failed == failed
            assert outcome.sends_succeeded == expected - failed
            assert len(outcome.failures) == failed
            assert {f.recipient_address for f in outcome.failures} <= failing_addresses
