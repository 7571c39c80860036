# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Lazy spaces - Example of a SelectionSession over a slow, paged hierarchy.

A didactic example: a fake document service returns the children of a page
after a short delay, the session loads them on expand and stores only the
explicit decisions.

Run with::

    python examples/lazy_spaces/spaces.py
"""

from __future__ import annotations

import asyncio
import logging

from genro_treeselect import SelectionOptions, SelectionSession

PAGES = {
    'root': [('eng', 'Engineering'), ('hr', 'HR')],
    'eng': [('api', 'API reference'), ('guides', 'Guides'), ('archive', 'Archive')],
    'archive': [('2019', '2019'), ('2020', '2020')],
    'hr': [('payroll', 'Payroll')],
}


class FakeDocumentService:
    """Returns child pages after a delay, like a remote API would."""

    def __init__(self, delay: float = 0.02):
        self.delay = delay

    async def children(self, parent_id):
        await asyncio.sleep(self.delay)
        return [
            {'id': page_id, 'parent_id': parent_id, 'title': title}
            for page_id, title in PAGES.get(parent_id, [])
        ]


def render(session: SelectionSession) -> str:
    """Return the visible rows as an indented checkbox list."""
    lines = []
    for node, depth, state in session.iter_visible():
        mark = '-' if state.indeterminate else ('x' if state.checked else ' ')
        suffix = ' ...' if session.is_loading(node.id) else ''
        lines.append(f"{'    ' * depth}[{mark}] {node.label}{suffix}")
    return '\n'.join(lines)


async def main() -> None:
    service = FakeDocumentService()
    saved = []

    async def load_children(parent_id):
        session.merge_nodes(await service.children(parent_id))

    session = SelectionSession(
        load_children,
        on_change=lambda record: saved.append(record.as_dict()),
        options=SelectionOptions(root_id='root'),
        record={'forceOn': ['eng'], 'forceOff': ['archive']},
    )
    session.start()
    await asyncio.sleep(0.05)

    session.expand('eng')
    await asyncio.sleep(0.05)
    session.expand('archive')
    await asyncio.sleep(0.05)
    print(render(session))

    session.toggle('2020')
    session.toggle('guides')
    await asyncio.sleep(0.2)
    print()
    print(render(session))
    print()
    print('saved records:', saved)
    session.close()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
