"""Well-known message extras mapped onto alert annotations.

Push clients attach a free-form ``extras`` tree to messages. Four of its
entries are meaningful to anyone reading the alert later, so they are copied
into annotations:

- ``client::display.contentType``           → ``gotify_content_type``
- ``client::notification.click.url``        → ``gotify_click_url``
- ``client::notification.bigImageUrl``      → ``gotify_big_image_url``
- ``android::action.onReceive.intentUrl``   → ``gotify_on_receive_intent_url``

Everything else in the tree is ignored.
"""

from __future__ import annotations

from collections.abc import Mapping

from src.core.types import ExtrasTree, ExtrasValue

ANNOTATION_CONTENT_TYPE = "gotify_content_type"
ANNOTATION_CLICK_URL = "gotify_click_url"
ANNOTATION_BIG_IMAGE_URL = "gotify_big_image_url"
ANNOTATION_ON_RECEIVE_INTENT_URL = "gotify_on_receive_intent_url"

EXTRAS_ANNOTATION_PATHS: dict[str, tuple[str, ...]] = {
    ANNOTATION_CONTENT_TYPE: ("client::display", "contentType"),
    ANNOTATION_CLICK_URL: ("client::notification", "click", "url"),
    ANNOTATION_BIG_IMAGE_URL: ("client::notification", "bigImageUrl"),
    ANNOTATION_ON_RECEIVE_INTENT_URL: ("android::action", "onReceive", "intentUrl"),
}


def string_at_path(tree: ExtrasTree | None, path: tuple[str, ...]) -> str | None:
    """Walk ``path`` through nested mappings and return a non-blank string leaf.

    Returns None when any node is missing or not a mapping, when the leaf
    is not a string, or when it is blank after trimming.
    """
    if not tree or not path:
        return None

    node: ExtrasValue = tree
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return None
        node = node[key]

    if not isinstance(node, str):
        return None
    value = node.strip()
    return value or None


def extras_annotations(extras: ExtrasTree | None) -> dict[str, str]:
    """Extract the well-known extras as annotations. Missing paths are skipped."""
    annotations: dict[str, str] = {}
    if not extras:
        return annotations
    for annotation, path in EXTRAS_ANNOTATION_PATHS.items():
        value = string_at_path(extras, path)
        if value is not None:
            annotations[annotation] = value
    return annotations
