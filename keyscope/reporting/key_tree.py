"""Tree-view node variants for presenting the key index.

Each node role is its own dataclass carrying only the fields it needs; the
`kind` tag lets renderers dispatch through a lookup table instead of probing
attributes.
"""
from dataclasses import dataclass, field
from typing import List, Union

from ..analyzer.key_index import KeyIndex
from ..analyzer.models import KeyCategory, KeyRecord, KeyStatistics, KeyUsage


@dataclass
class UsageNode:
    usage: KeyUsage
    kind: str = field(default='usage', init=False)


@dataclass
class KeyNode:
    key: KeyRecord
    children: List[UsageNode] = field(default_factory=list)
    kind: str = field(default='key', init=False)


@dataclass
class CategoryNode:
    category: KeyCategory
    children: List[KeyNode] = field(default_factory=list)
    kind: str = field(default='category', init=False)

    @property
    def count(self) -> int:
        return len(self.children)


@dataclass
class StatisticsNode:
    statistics: KeyStatistics
    kind: str = field(default='statistics', init=False)


@dataclass
class EmptyNode:
    message: str
    kind: str = field(default='empty', init=False)


TreeNode = Union[CategoryNode, KeyNode, UsageNode, StatisticsNode, EmptyNode]


def build_key_tree(index: KeyIndex, show_unused: bool = True) -> List[TreeNode]:
    """Top-level nodes: a statistics node, then one node per category.

    Categories follow the KeyCategory declaration order and empty ones are
    omitted. Without any keys a single EmptyNode is returned.
    """
    keys = index.cached_keys()
    if not show_unused:
        keys = [key for key in keys if key.is_used]

    if not keys:
        return [EmptyNode('No testing keys found')]

    nodes: List[TreeNode] = [StatisticsNode(index.statistics())]
    for category in KeyCategory:
        members = [key for key in keys if key.category == category]
        if not members:
            continue
        key_nodes = [
            KeyNode(key, children=[UsageNode(usage) for usage in key.usage_locations])
            for key in sorted(members, key=lambda key: key.name)
        ]
        nodes.append(CategoryNode(category, children=key_nodes))

    return nodes
