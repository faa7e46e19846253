# tests/services/test_comment_tree.py
from types import SimpleNamespace

from app.services.comment_tree import CommentNode, build_comment_tree, flatten, get_thread_depth


def make_comment(comment_id, parent_id=None):
    return SimpleNamespace(id=comment_id, parent_comment_id=parent_id)


def ids(nodes):
    return [node.comment.id for node in nodes]


def test_build_tree_attaches_replies_in_order():
    comments = [
        make_comment(1),
        make_comment(2, 1),
        make_comment(3),
        make_comment(4, 1),
        make_comment(5, 2),
    ]

    forest = build_comment_tree(comments)

    assert ids(forest) == [1, 3]
    assert ids(forest[0].replies) == [2, 4]
    assert ids(forest[0].replies[0].replies) == [5]
    assert forest[1].replies == []


def test_every_comment_appears_exactly_once():
    comments = [make_comment(i, (i - 1) // 2 or None) for i in range(1, 16)]

    flat = flatten(build_comment_tree(comments))

    assert sorted(c.id for c in flat) == list(range(1, 16))
    assert len(flat) == len(comments)


def test_reply_to_missing_parent_becomes_root():
    comments = [make_comment(1), make_comment(2, 99), make_comment(3, 2)]

    forest = build_comment_tree(comments)

    assert ids(forest) == [1, 2]
    assert ids(forest[1].replies) == [3]


def test_parent_cycle_does_not_loop():
    comments = [make_comment(1), make_comment(2, 3), make_comment(3, 2), make_comment(4, 3)]

    forest = build_comment_tree(comments)
    flat = flatten(forest)

    assert sorted(c.id for c in flat) == [1, 2, 3, 4]
    assert len(flat) == 4
    assert ids(forest)[0] == 1


def test_self_parent_is_a_root():
    forest = build_comment_tree([make_comment(7, 7)])

    assert ids(forest) == [7]
    assert forest[0].replies == []


def test_builder_does_not_touch_input():
    comments = [make_comment(1), make_comment(2, 1)]
    build_comment_tree(comments)

    assert not hasattr(comments[0], "replies")
    assert comments[1].parent_comment_id == 1


def test_empty_input():
    assert build_comment_tree([]) == []


def test_walk_is_depth_first():
    root = CommentNode(make_comment(1), [
        CommentNode(make_comment(2), [CommentNode(make_comment(3))]),
        CommentNode(make_comment(4)),
    ])

    assert [c.id for c in root.walk()] == [1, 2, 3, 4]


def test_thread_depth():
    comments = {c.id: c for c in [make_comment(1), make_comment(2, 1), make_comment(3, 2)]}

    assert get_thread_depth(comments[1], comments.get) == 0
    assert get_thread_depth(comments[2], comments.get) == 1
    assert get_thread_depth(comments[3], comments.get) == 2


def test_thread_depth_counts_hop_to_missing_parent():
    orphan = make_comment(5, 42)

    assert get_thread_depth(orphan, lambda _id: None) == 1


def test_thread_depth_terminates_on_cycle():
    comments = {c.id: c for c in [make_comment(1, 2), make_comment(2, 1)]}

    depth = get_thread_depth(comments[1], comments.get)

    assert depth == 2
