# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Observable HTML document tree.

Wraps an ``lxml.html`` document and emits structural change notifications
(childList + subtree scope) to subscribers.  Only mutations made through
``DocumentTree`` methods are observed; the host page drives its own
updates through this API, the badging engine mutates elements directly
and so does not re-notify itself.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

import lxml.html
from lxml.html import HtmlElement

logger = logging.getLogger("tilebadge.document")


class MutationKind(StrEnum):
    ADDED = "added"
    REMOVED = "removed"
    REPLACED = "replaced"


@dataclass(frozen=True, slots=True)
class Mutation:
    """One structural change: *node* was added to / removed from *parent*."""

    kind: MutationKind
    parent: HtmlElement
    node: HtmlElement


MutationCallback = Callable[[Mutation], object]


class Subscription:
    """Handle returned by ``DocumentTree.subscribe``.  ``close()`` is idempotent."""

    __slots__ = ("_tree", "_callback")

    def __init__(self, tree: DocumentTree, callback: MutationCallback) -> None:
        self._tree: DocumentTree | None = tree
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._tree is not None

    def close(self) -> None:
        if self._tree is not None:
            self._tree._unsubscribe(self)
            self._tree = None

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class DocumentTree:
    """An ``lxml.html`` document plus a change-notification channel."""

    def __init__(self, root: HtmlElement, *, url: str = "") -> None:
        self._root = root
        self.url = url
        self._subscriptions: list[Subscription] = []

    @classmethod
    def from_html(cls, html: str | bytes, *, url: str = "") -> DocumentTree:
        return cls(lxml.html.document_fromstring(html), url=url)

    # -- Queries --

    @property
    def root(self) -> HtmlElement:
        return self._root

    @property
    def head(self) -> HtmlElement | None:
        # the HTML parser does not synthesise <head> when the source has none
        return self._root.find("head")

    @property
    def body(self) -> HtmlElement | None:
        return self._root.find("body")

    def get_element_by_id(self, element_id: str) -> HtmlElement | None:
        return self._root.get_element_by_id(element_id, None)

    def contains(self, node: HtmlElement) -> bool:
        """True if *node* is still attached under this document's root."""
        return any(anc is self._root for anc in node.iterancestors()) or node is self._root

    def to_html(self) -> str:
        return lxml.html.tostring(self._root, encoding="unicode", doctype="<!DOCTYPE html>")

    # -- Structural mutations (notify subscribers) --

    def append(self, parent: HtmlElement, node: HtmlElement) -> HtmlElement:
        parent.append(node)
        self._notify(Mutation(MutationKind.ADDED, parent, node))
        return node

    def insert(self, parent: HtmlElement, index: int, node: HtmlElement) -> HtmlElement:
        parent.insert(index, node)
        self._notify(Mutation(MutationKind.ADDED, parent, node))
        return node

    def append_html(self, parent: HtmlElement, fragment: str) -> list[HtmlElement]:
        """Parse *fragment* and append each top-level element to *parent*."""
        nodes = [n for n in lxml.html.fragments_fromstring(fragment) if isinstance(n, HtmlElement)]
        for node in nodes:
            self.append(parent, node)
        return nodes

    def remove(self, node: HtmlElement) -> None:
        """Detach *node* from this document.  Nodes outside the document are ignored."""
        if node is self._root or not self.contains(node):
            return
        parent = node.getparent()
        # drop_tree keeps the tail text attached to the previous sibling
        node.drop_tree()
        self._notify(Mutation(MutationKind.REMOVED, parent, node))

    def replace(self, old: HtmlElement, new: HtmlElement) -> HtmlElement:
        if old is self._root or not self.contains(old):
            raise ValueError("cannot replace a detached node")
        parent = old.getparent()
        parent.replace(old, new)
        self._notify(Mutation(MutationKind.REPLACED, parent, new))
        return new

    # -- Subscriptions --

    def subscribe(self, callback: MutationCallback) -> Subscription:
        sub = Subscription(self, callback)
        self._subscriptions.append(sub)
        return sub

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _unsubscribe(self, sub: Subscription) -> None:
        try:
            self._subscriptions.remove(sub)
        except ValueError:
            pass

    def _notify(self, mutation: Mutation) -> None:
        for sub in list(self._subscriptions):
            try:
                sub._callback(mutation)
            except Exception:
                logger.exception("Mutation subscriber failed (%s)", mutation.kind.value)
