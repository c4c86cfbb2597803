"""Plain terminal preview of a paginated document."""

from typing import Dict, List, Optional

import blessed

from .constants import NodeTypes
from .measure import wrap_text
from .model import Node
from .pages import collect_page_nodes
from .tables import get_group_id, is_table_node


class PagePreview:
    """Renders pages as lines of text separated by page rulers."""

    def __init__(self, terminal: Optional[blessed.Terminal] = None, num_columns: Optional[int] = None):
        self.term = terminal or blessed.Terminal()
        self.num_columns = num_columns or min(self.term.width or 80, 80)

    def _create_page_break_line(self, page_num: int) -> str:
        """Create a centered ruler with the page number."""
        page_text = f" Page {page_num} "
        padding = max((self.num_columns - len(page_text)) // 2, 4)
        trailing = max(self.num_columns - padding - len(page_text), 4)
        return "─" * padding + page_text + "─" * trailing

    def _block_lines(self, block: Node) -> List[str]:
        if block.is_textblock:
            value = "".join(child.text if child.is_text else "\n" for child in block.content)
            lines = wrap_text(value, self.num_columns, len)
            if block.type == NodeTypes.HEADING:
                return [self.term.bold(line) if line else line for line in lines]
            return lines
        return [f"[{block.type}]"]

    def render(self, doc: Node) -> List[str]:
        lines: List[str] = []
        rows_seen: Dict[str, int] = {}
        for index, (page, _) in enumerate(collect_page_nodes(doc)):
            lines.append(self._create_page_break_line(index + 1))
            for block in page.content:
                if is_table_node(block):
                    lines.append(self._table_line(block, rows_seen))
                else:
                    lines.extend(self._block_lines(block))
        return lines

    @staticmethod
    def _table_line(table: Node, rows_seen: Dict[str, int]) -> str:
        group_id = get_group_id(table)
        if not group_id:
            return f"[table: rows 1-{table.child_count}]"
        first = rows_seen.get(group_id, 0)
        rows_seen[group_id] = first + table.child_count
        return f"[table: rows {first + 1}-{first + table.child_count} of group {group_id}]"

    def show(self, doc: Node) -> None:
        for line in self.render(doc):
            print(line)
