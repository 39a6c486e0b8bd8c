"""
DOM inventory dump for maintaining the control table when NotebookLM changes its markup.
Not used on the delivery path.
"""

import json
import logging
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

INVENTORY_KEYS = ("buttons", "clickableElements", "textInputs", "dialogs", "notebookLinks")

PAGE_INVENTORY_JS = """
() => {
    const text = (el, n) => (el.textContent || '').trim().substring(0, n);
    const cls = (el) => String(el.className || '').substring(0, 100);
    const visible = (el) => el.offsetParent !== null;
    const info = {
        url: window.location.href,
        title: document.title,
        buttons: [],
        clickableElements: [],
        textInputs: [],
        dialogs: [],
        notebookLinks: []
    };
    document.querySelectorAll('button').forEach((btn, i) => {
        info.buttons.push({
            index: i, text: text(btn, 50), ariaLabel: btn.getAttribute('aria-label'),
            className: cls(btn), disabled: btn.disabled, visible: visible(btn)
        });
    });
    document.querySelectorAll('[role="button"]').forEach((el, i) => {
        info.clickableElements.push({
            index: i, tagName: el.tagName, text: text(el, 50),
            ariaLabel: el.getAttribute('aria-label'), className: cls(el)
        });
    });
    document.querySelectorAll('textarea, input[type="text"], input:not([type]), [contenteditable="true"]')
        .forEach((el, i) => {
            info.textInputs.push({
                index: i, tagName: el.tagName, placeholder: el.getAttribute('placeholder'),
                className: cls(el), visible: visible(el)
            });
        });
    document.querySelectorAll('[role="dialog"], [role="modal"], [class*="dialog"], [class*="modal"]')
        .forEach((el, i) => {
            info.dialogs.push({
                index: i, tagName: el.tagName, role: el.getAttribute('role'),
                className: cls(el), visible: visible(el), innerText: text(el, 200)
            });
        });
    document.querySelectorAll('a[href*="/notebook/"]').forEach((el, i) => {
        const parent = el.closest('[class*="card"], [class*="item"], [class*="project"]');
        let title = '';
        if (parent) {
            const titleEl = parent.querySelector('[class*="title"], [class*="name"], h1, h2, h3');
            if (titleEl) title = text(titleEl, 100);
        }
        info.notebookLinks.push({
            index: i, href: el.getAttribute('href') || '', title: title || text(el, 100),
            parentClass: parent ? cls(parent) : null
        });
    });
    return info;
}
"""


def dump_page_inventory(page, path) -> Dict[str, int]:
    """Write the page's control inventory as JSON and return the count per inventory."""
    info = page.evaluate(PAGE_INVENTORY_JS) or {}
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(info, f, indent=2, ensure_ascii=False)

    counts = {key: len(info.get(key) or []) for key in INVENTORY_KEYS}
    logger.info(f"DOM inventory saved to {path}: {counts}")
    return counts
