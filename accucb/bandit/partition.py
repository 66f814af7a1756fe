# accucb/bandit/partition.py
"""
Context-partition tree kept as an arena of nodes.

Nodes are addressed by stable integer ids (their index in the arena, root = 0).
A parent reference is a plain id; children are an append-only list of ids.
Nodes are only ever created by :meth:`PartitionTree.split` and never removed,
so every id handed out stays valid for the lifetime of the tree.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import UnknownNodeId


@dataclass
class PartitionNode:
    r"""
    一个分区节点（对应上下文空间中的一个区域）。

    Attributes
    ----------
    node_id : int
        在 arena 中的下标，按创建顺序分配。
    depth : int
        树深度，root = 0。
    ordinal : int
        兄弟节点中的序号 (1..Nchild)，root 为 1。
    parent : Optional[int]
        父节点 id；root 为 None。
    mean : float
        经验奖励均值 \hat{\mu}。
    count : float
        累计有效拉取次数 C，单调不减。
    active : bool
        是否为当前可被选择的叶节点。
    children : List[int]
        子节点 id，refine 之前为空。
    """

    node_id: int
    depth: int
    ordinal: int
    parent: Optional[int] = None
    mean: float = 0.0
    count: float = 0.0
    active: bool = True
    children: List[int] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def as_row(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "parent": -1 if self.parent is None else self.parent,
            "depth": self.depth,
            "ordinal": self.ordinal,
            "mean": float(self.mean),
            "count": float(self.count),
            "active": bool(self.active),
            "n_children": len(self.children),
        }


class PartitionTree:
    """Arena holding every node ever created; starts as a single active root."""

    def __init__(self, root_mean: float = 0.0) -> None:
        self.nodes: List[PartitionNode] = [
            PartitionNode(node_id=0, depth=0, ordinal=1, parent=None, mean=float(root_mean))
        ]

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------
    @property
    def root(self) -> PartitionNode:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return (
            isinstance(node_id, numbers.Integral)
            and not isinstance(node_id, bool)
            and 0 <= node_id < len(self.nodes)
        )

    def node(self, node_id: int) -> PartitionNode:
        if node_id not in self:
            raise UnknownNodeId(node_id)
        return self.nodes[int(node_id)]

    def parent_of(self, node: PartitionNode) -> Optional[PartitionNode]:
        if node.parent is None:
            return None
        return self.nodes[node.parent]

    def children_of(self, node: PartitionNode) -> List[PartitionNode]:
        return [self.nodes[c] for c in node.children]

    def path_to(self, node_id: int) -> List[PartitionNode]:
        """Nodes from the root down to ``node_id`` (both included)."""
        path = []
        cur: Optional[PartitionNode] = self.node(node_id)
        while cur is not None:
            path.append(cur)
            cur = self.parent_of(cur)
        path.reverse()
        return path

    def active_leaves(self) -> List[PartitionNode]:
        """Active leaves in id (creation) order."""
        return [n for n in self.nodes if n.active]

    @property
    def num_active_leaves(self) -> int:
        return sum(1 for n in self.nodes if n.active)

    @property
    def max_depth(self) -> int:
        return max(n.depth for n in self.nodes)

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------
    def split(self, node_id: int, n_children: int) -> List[PartitionNode]:
        """
        Deactivate an active leaf and create ``n_children`` active children.

        Children get ordinals ``1..n_children``, ``depth + 1``, the parent's
        mean and ``count = 0``.
        """
        node = self.node(node_id)
        if not node.active or not node.is_leaf:
            raise ValueError(f"node {node_id} is not an active leaf and cannot be split")
        if n_children < 2:
            raise ValueError(f"n_children must be >= 2, got {n_children}")

        created = []
        for ordinal in range(1, n_children + 1):
            child = PartitionNode(
                node_id=len(self.nodes),
                depth=node.depth + 1,
                ordinal=ordinal,
                parent=node.node_id,
                mean=node.mean,
                count=0.0,
                active=True,
            )
            self.nodes.append(child)
            node.children.append(child.node_id)
            created.append(child)
        node.active = False
        return created

    def snapshot(self) -> List[Dict[str, Any]]:
        """Plain-dict copy of every node, for logging."""
        return [n.as_row() for n in self.nodes]
