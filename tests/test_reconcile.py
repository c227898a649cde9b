import itertools
from datetime import datetime, timedelta, timezone

from doctrack.core import reconcile, state_machine
from doctrack.core.enums import DocumentStatus
from doctrack.core.reconcile import ChangeEvent, ChangeTable, ChangeType, LocalView
from doctrack.core.records import Actor, DocumentDraft
from doctrack.services.event import document_record, log_record

NOW = datetime(2025, 5, 1, tzinfo=timezone.utc)
U1 = Actor(id="u1", name="Una", department="A")
U2 = Actor(id="u2", name="Dos", department="B")


def _created():
    return state_machine.create(
        DocumentDraft(title="Memo", recipient="B"), U1, [], now=NOW
    )


def _doc_event(document, event_type=ChangeType.insert):
    return ChangeEvent(
        table=ChangeTable.documents,
        event_type=event_type,
        record=document_record(document),
    )


def _log_events(document, entries):
    return [
        ChangeEvent(
            table=ChangeTable.document_logs,
            event_type=ChangeType.insert,
            record=log_record(document.id, entry),
        )
        for entry in entries
    ]


def _history():
    created = _created()
    received = state_machine.receive(created.document, U2, now=NOW + timedelta(minutes=5))
    events = [_doc_event(created.document)]
    events += _log_events(created.document, created.entries)
    events.append(_doc_event(received.document, ChangeType.update))
    events += _log_events(received.document, received.entries)
    return received.document, events


def _summary(view):
    return {
        doc_id: (doc.status, doc.updated_at, tuple(e.id for e in doc.log))
        for doc_id, doc in view.documents.items()
    }


class TestMerge:
    def test_in_order_delivery(self):
        final, events = _history()
        view = reconcile.merge_all(LocalView(), events)
        merged = view.get(final.id)
        assert merged.status == DocumentStatus.processing
        assert [e.id for e in merged.log] == [e.id for e in final.log]
        assert not view.orphan_logs

    def test_duplicate_delivery_is_a_no_op(self):
        final, events = _history()
        once = reconcile.merge_all(LocalView(), events)
        twice = reconcile.merge_all(once, events)
        assert _summary(twice) == _summary(once)
        assert len(twice.get(final.id).log) == 3

    def test_any_delivery_order_converges(self):
        final, events = _history()
        expected = _summary(reconcile.merge_all(LocalView(), events))
        for order in itertools.permutations(events):
            assert _summary(reconcile.merge_all(LocalView(), order)) == expected

    def test_older_snapshot_does_not_win(self):
        final, events = _history()
        view = reconcile.merge_all(LocalView(), events)
        stale = _doc_event(_created().document.model_copy(update={"id": final.id}))
        view = reconcile.merge(view, stale)
        assert view.get(final.id).status == DocumentStatus.processing

    def test_plain_dict_events(self):
        created = _created()
        event = {
            "table": "documents",
            "event_type": "INSERT",
            "record": document_record(created.document),
        }
        view = reconcile.merge(LocalView(), event)
        assert view.get(created.document.id).assigned_to == "B"


class TestDeletes:
    def test_tombstone_beats_late_insert(self):
        final, events = _history()
        delete = ChangeEvent(
            table=ChangeTable.documents,
            event_type=ChangeType.delete,
            record={"id": final.id},
        )
        view = reconcile.merge_all(LocalView(), [delete, *events])
        assert view.get(final.id) is None
        assert final.id in view.deleted

    def test_log_delete(self):
        final, events = _history()
        view = reconcile.merge_all(LocalView(), events)
        gone = final.log[0].id
        view = reconcile.merge(
            view,
            ChangeEvent(
                table=ChangeTable.document_logs,
                event_type=ChangeType.delete,
                record={"id": gone},
            ),
        )
        assert gone not in [e.id for e in view.get(final.id).log]

    def test_log_delete_survives_nested_log_in_document_row(self):
        final, _ = _history()
        record = document_record(final)
        record["logs"] = [e.model_dump(mode="json") for e in final.log]
        update = ChangeEvent(
            table=ChangeTable.documents,
            event_type=ChangeType.update,
            record=record,
        )
        delete = ChangeEvent(
            table=ChangeTable.document_logs,
            event_type=ChangeType.delete,
            record={"id": final.log[0].id},
        )
        forward = reconcile.merge_all(LocalView(), [update, delete])
        backward = reconcile.merge_all(LocalView(), [delete, update])
        assert _summary(forward) == _summary(backward)
        assert len(backward.get(final.id).log) == len(final.log) - 1


class TestOptimisticWrites:
    def test_local_write_confirmed_by_echo(self):
        created = _created()
        view = reconcile.apply_local(LocalView(), created.document)
        assert not view.is_confirmed(created.document.id)
        view = reconcile.merge(view, _doc_event(created.document))
        assert view.is_confirmed(created.document.id)

    def test_failed_write_stays_visible(self):
        created = _created()
        view = reconcile.apply_local(LocalView(), created.document)
        view = reconcile.mark_failed(view, created.document.id)
        assert view.get(created.document.id) is not None
        assert created.document.id in view.failed
