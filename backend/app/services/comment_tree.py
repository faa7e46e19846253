# backend/app/services/comment_tree.py
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence


@dataclass
class CommentNode:
    """A comment plus its direct replies, in creation order"""
    comment: Any
    replies: List['CommentNode'] = field(default_factory=list)

    def walk(self):
        """Yield this node's comment followed by all descendants, depth first"""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node.comment
            stack.extend(reversed(node.replies))


def build_comment_tree(comments: Sequence[Any]) -> List[CommentNode]:
    """Assemble comments of one feedback item into a forest of reply trees.

    `comments` must be ordered by creation time ascending. A comment whose
    parent is not part of `comments` becomes a root. Every input comment ends
    up in exactly one place in the returned forest. Stored records are never
    touched; the nodes only reference them.
    """
    nodes: Dict[Any, CommentNode] = {}
    position: Dict[Any, int] = {}
    for idx, comment in enumerate(comments):
        nodes[comment.id] = CommentNode(comment=comment)
        position[comment.id] = idx

    roots: List[CommentNode] = []
    for comment in comments:
        node = nodes[comment.id]
        parent = nodes.get(comment.parent_comment_id) if comment.parent_comment_id is not None else None
        if parent is not None and parent is not node:
            parent.replies.append(node)
        else:
            roots.append(node)

    # Comments hanging off a parent cycle are unreachable from any root.
    # Promote them in creation order so the forest stays finite.
    reachable = set()
    for root in roots:
        reachable.update(c.id for c in root.walk())

    if len(reachable) < len(nodes):
        for comment in comments:
            if comment.id in reachable:
                continue
            node = nodes[comment.id]
            nodes[comment.parent_comment_id].replies.remove(node)
            roots.append(node)
            reachable.update(c.id for c in node.walk())
        roots.sort(key=lambda n: position[n.comment.id])

    return roots


def get_thread_depth(comment: Any, lookup: Callable[[Any], Optional[Any]]) -> int:
    """Count parent hops from `comment` up to a comment with no parent.

    `lookup` resolves a comment id to a comment or None. A missing parent
    ends the walk; the hop towards it is still counted.
    """
    depth = 0
    seen = {comment.id}
    current = comment

    while current.parent_comment_id is not None:
        depth += 1
        parent_id = current.parent_comment_id
        if parent_id in seen:
            break
        current = lookup(parent_id)
        if current is None:
            break
        seen.add(current.id)

    return depth


def flatten(forest: Sequence[CommentNode]) -> List[Any]:
    """Return every comment in the forest, depth first"""
    result = []
    for root in forest:
        result.extend(root.walk())
    return result
