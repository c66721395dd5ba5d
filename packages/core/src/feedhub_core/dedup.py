from __future__ import annotations

from collections.abc import Iterable

from feedhub_core.gh.issues import RemoteComment

# Written into every comment pushed to the remote tracker; see GitHubTracker.create_comment.
LOOP_MARKER = "commented via Feedback Hub"


def filter_new(
    remote_comments: Iterable[RemoteComment],
    existing_remote_ids: Iterable[int],
    loop_marker: str = LOOP_MARKER,
) -> list[RemoteComment]:
    """Return the remote comments that should be imported, in their original order.

    Skips comments already imported (by id), comments this system wrote itself
    (body contains loop_marker), and repeated ids within the same batch.
    Inputs are not mutated.
    """
    seen = set(existing_remote_ids)
    fresh = []
    for comment in remote_comments:
        if comment.id in seen:
            continue
        if loop_marker and loop_marker in (comment.body or ""):
            continue
        seen.add(comment.id)
        fresh.append(comment)
    return fresh


def format_imported(comment: RemoteComment) -> str:
    """Render the local content for an imported remote comment."""
    author = f"@{comment.author}" if comment.author else "Unknown"
    return f"**[GitHub - {author}]**\n{comment.body}"
