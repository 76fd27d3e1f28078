"""Branch flow naming for pull request notifications."""

from __future__ import annotations

import enum


class FlowLabel(str, enum.Enum):
    STABLE_PROMOTION = "Stable Promotion"
    FIXES_PROMOTION = "Fixes Promotion"
    EMERGENT_PATCHING = "Emergent Patching"
    RELEASE_PROMOTION = "Release Promotion"
    DELIVERING = "Delivering"
    ILLEGAL_FLOW = "Illegal Flow"
    UNKNOWN = "Unknown"


def strip_owner(label: str) -> str:
    """``'owner:branch'`` → ``'branch'``; bare branch names pass through."""
    _, sep, branch = label.partition(":")
    return branch if sep else label


def _is_dev(branch: str) -> bool:
    return branch == "dev" or branch.startswith("dev-")


def classify(head: str, base: str) -> FlowLabel:
    """
    Name the flow of a pull request from ``head`` into ``base``.

    Both arguments are bare branch names (see :func:`strip_owner`).
    """
    if head.startswith("ft-"):
        # feature merging flow
        if _is_dev(base):
            return FlowLabel.STABLE_PROMOTION
        if base == "master":
            return FlowLabel.ILLEGAL_FLOW
        return FlowLabel.UNKNOWN
    if head.startswith("fix-"):
        # hotfix merging flow
        if _is_dev(base):
            return FlowLabel.FIXES_PROMOTION
        if base == "master":
            return FlowLabel.EMERGENT_PATCHING
        return FlowLabel.UNKNOWN
    if _is_dev(head):
        return FlowLabel.RELEASE_PROMOTION if base == "master" else FlowLabel.DELIVERING
    if head == "master":
        return FlowLabel.DELIVERING if _is_dev(base) else FlowLabel.ILLEGAL_FLOW
    return FlowLabel.UNKNOWN
