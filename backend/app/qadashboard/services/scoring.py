"""QA Dashboard - Session Scoring

条目状态变更 -> 会话计数器增量的状态转移表。

计数器只做增量调整，不做全量重算：
- pending 没有计数器
- passed / failed / skipped 各对应一个计数器
"""

from __future__ import annotations

from itertools import product

from qadashboard.database.models import ItemStatus

# 状态 -> 会话计数器列名
STATUS_COUNTERS: dict[ItemStatus, str] = {
    ItemStatus.PASSED: "passed_items",
    ItemStatus.FAILED: "failed_items",
    ItemStatus.SKIPPED: "skipped_items",
}

TOTAL_COUNTER = "total_items"


def _delta(old: ItemStatus, new: ItemStatus) -> dict[str, int]:
    delta: dict[str, int] = {}
    if old in STATUS_COUNTERS:
        delta[STATUS_COUNTERS[old]] = delta.get(STATUS_COUNTERS[old], 0) - 1
    if new in STATUS_COUNTERS:
        delta[STATUS_COUNTERS[new]] = delta.get(STATUS_COUNTERS[new], 0) + 1
    return {column: value for column, value in delta.items() if value}


# (旧状态, 新状态) -> {计数器: 增量}
TRANSITIONS: dict[tuple[ItemStatus, ItemStatus], dict[str, int]] = {
    (old, new): _delta(old, new) for old, new in product(ItemStatus, ItemStatus)
}


def transition_delta(old: ItemStatus | str, new: ItemStatus | str) -> dict[str, int]:
    """状态变更对应的计数器增量（返回副本）"""
    return dict(TRANSITIONS[(ItemStatus(old), ItemStatus(new))])


def removal_delta(status: ItemStatus | str, is_custom: bool) -> dict[str, int]:
    """删除条目对应的计数器增量

    - 自定义条目：物理删除，total 减一，原状态计数器减一
    - 清单条目：改为 skipped；已是 skipped 时不变（重复删除幂等）
    """
    status = ItemStatus(status)
    if is_custom:
        delta = {TOTAL_COUNTER: -1}
        if status in STATUS_COUNTERS:
            delta[STATUS_COUNTERS[status]] = -1
        return delta
    return transition_delta(status, ItemStatus.SKIPPED)
