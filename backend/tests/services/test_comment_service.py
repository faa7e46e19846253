# tests/services/test_comments.py
from datetime import datetime, timezone

import pytest

from app.errors import ConflictError, NotFoundError
from app.models import AuthorRole, Comment, CommentStatus
from app.services.comments import TOMBSTONE, add_reaction, comment_service, remove_reaction

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_second_reaction_from_same_author_replaces_first():
    reactions = add_reaction([], "like", {"name": "Sam", "role": "pm"}, now=NOW)
    reactions = add_reaction(reactions, "love", {"name": "Sam", "role": "pm"}, now=NOW)

    assert len(reactions) == 1
    assert reactions[0]["type"] == "love"
    assert reactions[0]["author"] == {"name": "Sam", "role": "pm"}
    assert reactions[0]["created_at"] == NOW.isoformat()


def test_reactions_from_different_authors_accumulate():
    reactions = add_reaction([], "like", {"name": "Sam"})
    reactions = add_reaction(reactions, "laugh", {"name": "Kim"})

    assert [r["author"]["name"] for r in reactions] == ["Sam", "Kim"]


def test_add_reaction_returns_new_list():
    original = [{"type": "like", "author": {"name": "Sam", "role": None}, "created_at": NOW.isoformat()}]
    updated = add_reaction(original, "sad", {"name": "Sam"})

    assert original[0]["type"] == "like"
    assert updated[0]["type"] == "sad"


def test_remove_reaction_by_unknown_author_is_noop():
    reactions = add_reaction([], "like", {"name": "Sam"}, now=NOW)

    assert remove_reaction(reactions, "Nobody") == reactions
    assert remove_reaction([], "Nobody") == []


def test_remove_reaction_drops_author():
    reactions = add_reaction([], "like", {"name": "Sam"})
    reactions = add_reaction(reactions, "love", {"name": "Kim"})

    remaining = remove_reaction(reactions, "Sam")

    assert [r["author"]["name"] for r in remaining] == ["Kim"]


def test_edit_content_records_history(sample_comment):
    changed = comment_service.edit_content(sample_comment, "Palette updated", "typo", now=NOW)

    assert changed is True
    assert sample_comment.content == "Palette updated"
    assert sample_comment.status == CommentStatus.EDITED
    assert sample_comment.edit_history == [{
        "previous_content": "Agreed, I will update the palette",
        "edited_at": NOW.isoformat(),
        "reason": "typo",
    }]


def test_edit_with_same_content_is_not_recorded(sample_comment):
    assert comment_service.edit_content(sample_comment, sample_comment.content) is False
    assert sample_comment.edit_history == []


def test_deleted_comment_cannot_be_edited(sample_comment):
    comment_service.soft_delete(sample_comment)

    assert sample_comment.content == TOMBSTONE
    assert sample_comment.status == CommentStatus.DELETED
    with pytest.raises(ConflictError):
        comment_service.edit_content(sample_comment, "resurrected")


def _reply(db_session, feedback_id, parent_id, content):
    reply = Comment(
        feedback_id=feedback_id,
        parent_comment_id=parent_id,
        author_name="Robin",
        author_role=AuthorRole.DEVELOPER,
        content=content,
        mentions=[],
        attachments=[],
        reactions=[],
        edit_history=[]
    )
    db_session.add(reply)
    db_session.commit()
    db_session.refresh(reply)
    return reply


def test_tree_keeps_tombstone_with_replies(db_session, sample_feedback, sample_comment):
    reply = _reply(db_session, sample_feedback.id, sample_comment.id, "On it")
    comment_service.soft_delete(sample_comment)
    db_session.commit()

    forest = comment_service.get_comment_tree(db_session, sample_feedback.id)

    assert len(forest) == 1
    assert forest[0].comment.id == sample_comment.id
    assert forest[0].comment.content == TOMBSTONE
    assert [n.comment.id for n in forest[0].replies] == [reply.id]


def test_find_children_skips_deleted(db_session, sample_feedback, sample_comment):
    kept = _reply(db_session, sample_feedback.id, sample_comment.id, "First")
    removed = _reply(db_session, sample_feedback.id, sample_comment.id, "Second")
    comment_service.soft_delete(removed)
    db_session.commit()

    children = comment_service.find_children(db_session, sample_comment.id)
    everything = comment_service.find_children(db_session, sample_comment.id, include_deleted=True)

    assert [c.id for c in children] == [kept.id]
    assert [c.id for c in everything] == [kept.id, removed.id]


def test_thread_depth_from_store(db_session, sample_feedback, sample_comment):
    child = _reply(db_session, sample_feedback.id, sample_comment.id, "Child")
    grandchild = _reply(db_session, sample_feedback.id, child.id, "Grandchild")

    assert comment_service.get_thread_depth(db_session, sample_comment) == 0
    assert comment_service.get_thread_depth(db_session, grandchild) == 2


def test_resolve_parent(db_session, sample_feedback, sample_comment):
    assert comment_service.resolve_parent(db_session, sample_feedback.id, None) is None
    assert comment_service.resolve_parent(db_session, sample_feedback.id, sample_comment.id).id == sample_comment.id

    with pytest.raises(NotFoundError):
        comment_service.resolve_parent(db_session, sample_feedback.id, 999999)
    with pytest.raises(ConflictError):
        comment_service.resolve_parent(db_session, sample_feedback.id + 1, sample_comment.id)
