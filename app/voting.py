"""
Vote ledger: the per-post set of votes and the scores derived from it.

The functions operate on a ``Post`` ORM instance whether or not it is
attached to a database session: the in-memory repository keeps transient
posts, the SQL repository works on loaded ones, and both share these rules.

Invariants maintained after every call:

- at most one vote per user id;
- ``post.score == sum(v.value for v in post.votes)``;
- ``post.upvote_percentage`` is derived from the current score and count.
"""
from app.errors import InvalidInputError
from app.models import Post, Vote

UPVOTE = 1
DOWNVOTE = -1


def upvote_percentage(score: int, vote_count: int) -> int:
    """
    Share of upvotes in percent, rounded down.

    With ``score = up - down`` and ``count = up + down`` the upvote count is
    ``(score + count) // 2`` exactly. An empty ledger is 0 percent.
    """
    if vote_count <= 0:
        return 0
    upvotes = (score + vote_count) // 2
    return upvotes * 100 // vote_count


def sync_upvote_percentage(post: Post) -> None:
    post.upvote_percentage = upvote_percentage(post.score, len(post.votes))


def find_vote(post: Post, user_id: str) -> tuple[Vote | None, int]:
    for index, vote in enumerate(post.votes):
        if vote.user_id == user_id:
            return vote, index
    return None, -1


def start_ledger(post: Post, author_id: str) -> None:
    """Reset the ledger to the author's own upvote."""
    post.votes = [Vote(user_id=author_id, value=UPVOTE)]
    post.score = UPVOTE
    sync_upvote_percentage(post)


def cast_vote(post: Post, user_id: str, value: int) -> None:
    """
    Set or change *user_id*'s vote to *value*.

    Casting the same value twice is a no-op; flipping an existing vote moves
    the score by ``value - old``.
    """
    if value not in (UPVOTE, DOWNVOTE):
        raise InvalidInputError(f"vote value must be 1 or -1, got {value!r}")

    vote, _ = find_vote(post, user_id)
    if vote is None:
        post.votes.append(Vote(user_id=user_id, value=value))
        post.score += value
    elif vote.value == value:
        return
    else:
        post.score += value - vote.value
        vote.value = value
    sync_upvote_percentage(post)


def upvote(post: Post, user_id: str) -> None:
    cast_vote(post, user_id, UPVOTE)


def downvote(post: Post, user_id: str) -> None:
    cast_vote(post, user_id, DOWNVOTE)


def unvote(post: Post, user_id: str) -> None:
    """Withdraw *user_id*'s vote; no-op when there is none."""
    vote, index = find_vote(post, user_id)
    if vote is None:
        return
    post.score -= vote.value
    post.votes.pop(index)
    sync_upvote_percentage(post)
