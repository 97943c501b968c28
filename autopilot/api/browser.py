"""
Playwright-backed surface.

Provides a clean interface to the live game page: every snapshot
serialises the DOM in a single page.evaluate call, so discovery runs on a
consistent copy in Python while the game keeps re-rendering. Framework
component state is read by a separate call, only when asked for.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from autopilot.config import BrowserConfig

from .models import Direction
from .surface import Element, Surface, SurfaceError, SurfaceSnapshot, parse_level_texts

logger = logging.getLogger(__name__)

# Depth bound for the component-state walk
COMPONENT_WALK_DEPTH = 25

# Resolves a child-index path (from <html>) back to a live element
_RESOLVE_JS = """
const resolvePath = (path) => {
    if (!path) return null;
    let el = document.documentElement;
    for (const i of path) {
        if (!el) return null;
        el = el.children[i];
    }
    return el || null;
};
"""

SNAPSHOT_JS = """
() => {
    const SKIP = new Set(['SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE']);
    const serialize = (el) => {
        const attrs = {};
        for (const a of el.attributes) attrs[a.name] = a.value;
        let text = '';
        for (const n of el.childNodes) {
            if (n.nodeType === Node.TEXT_NODE) text += n.nodeValue;
        }
        const r = el.getBoundingClientRect();
        const cs = getComputedStyle(el);
        const computed = { display: cs.display };
        if (cs.display.includes('grid')) computed.gridTemplateColumns = cs.gridTemplateColumns;
        const children = [];
        for (const c of el.children) {
            // Placeholders keep child indices aligned with the live tree
            children.push(SKIP.has(c.tagName)
                ? { tag: c.tagName.toLowerCase(), attrs: {}, text: '', rect: [0, 0, 0, 0], children: [] }
                : serialize(c));
        }
        return {
            tag: el.tagName.toLowerCase(),
            attrs,
            text,
            rect: [r.left, r.top, r.width, r.height],
            computed,
            children,
        };
    };

    return { root: serialize(document.documentElement), components: null };
}
"""

# Component tree under the framework root, with state projected to board/player/apple
COMPONENTS_JS = """
(maxDepth) => {
    const root = document.getElementById('__next') || document.querySelector('#root');
    const container = root && root._reactRootContainer;
    const current = container && container._internalRoot && container._internalRoot.current;
    if (!current) return null;
    const project = (s) => {
        try {
            return JSON.parse(JSON.stringify({ board: s.board, player: s.player, apple: s.apple }));
        } catch (e) {
            return {};
        }
    };
    const walk = (node, depth) => {
        if (!node || depth > maxDepth) return null;
        const s = node.memoizedState;
        const state = (s && typeof s === 'object') ? ('board' in s ? project(s) : {}) : null;
        return { state, child: walk(node.child, depth + 1), sibling: walk(node.sibling, depth + 1) };
    };
    return walk(current, 0);
}
"""

LEVEL_TEXTS_JS = """
() => Array.from(document.querySelectorAll('.stat-display')).map((e) => e.textContent || '')
"""

FOCUS_JS = "(path) => {" + _RESOLVE_JS + """
    const el = resolvePath(path);
    if (el) {
        if (!el.hasAttribute('tabindex')) el.setAttribute('tabindex', '-1');
        if (typeof el.focus === 'function') el.focus();
    }
    if (typeof window.focus === 'function') window.focus();
}
"""

DISPATCH_KEY_JS = "({ path, key, keyCode }) => {" + _RESOLVE_JS + """
    const opts = { key, code: key, keyCode, which: keyCode, bubbles: true, cancelable: true };
    const el = resolvePath(path) || document.activeElement || document.body;
    // Listeners may sit on any of these, so every one gets the event
    for (const e of [el, document.body, document, document.documentElement, window]) {
        if (e) {
            e.dispatchEvent(new KeyboardEvent('keydown', opts));
            e.dispatchEvent(new KeyboardEvent('keyup', opts));
        }
    }
}
"""


def _path_arg(target: Optional[Element]) -> Optional[list[int]]:
    return list(target.path) if target is not None else None


class BrowserSurface(Surface):
    """
    Surface over a Playwright page.

    Args:
        page: Page showing the game
    """

    def __init__(self, page: Page):
        self.page = page

    async def _evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return await self.page.evaluate(script, arg)
        except PlaywrightError as e:
            raise SurfaceError(str(e)) from e

    async def snapshot(self) -> SurfaceSnapshot:
        data = await self._evaluate(SNAPSHOT_JS)
        if not data or not data.get("root"):
            raise SurfaceError("Page returned an empty snapshot")
        return SurfaceSnapshot.from_dict(data)

    async def component_tree(self) -> Optional[dict[str, Any]]:
        tree = await self._evaluate(COMPONENTS_JS, COMPONENT_WALK_DEPTH)
        return tree if isinstance(tree, dict) else None

    async def read_level(self) -> Optional[int]:
        texts = await self._evaluate(LEVEL_TEXTS_JS)
        return parse_level_texts(texts or [])

    async def focus(self, target: Optional[Element]) -> None:
        await self._evaluate(FOCUS_JS, _path_arg(target))

    async def dispatch_key(self, direction: Direction, target: Optional[Element]) -> None:
        await self._evaluate(
            DISPATCH_KEY_JS,
            {"path": _path_arg(target), "key": direction.key, "keyCode": direction.key_code},
        )


@asynccontextmanager
async def open_browser_surface(config: BrowserConfig) -> AsyncIterator[BrowserSurface]:
    """
    Open the game page and yield a surface for it.

    Launches Chromium, or attaches to a running browser when `cdp_url` is
    configured (useful when the player is already logged in).

    Args:
        config: Browser configuration
    """
    timeout_ms = config.timeout * 1000
    async with async_playwright() as pw:
        if config.cdp_url:
            logger.info(f"Attaching to browser at {config.cdp_url}")
            browser = await pw.chromium.connect_over_cdp(config.cdp_url)
            context = browser.contexts[0] if browser.contexts else await browser.new_context()
            page = context.pages[0] if context.pages else await context.new_page()
            if config.url and not page.url.startswith(config.url):
                await page.goto(config.url, timeout=timeout_ms)
        else:
            logger.info(f"Launching Chromium (headless={config.headless})")
            browser = await pw.chromium.launch(headless=config.headless)
            page = await browser.new_page(
                viewport={"width": config.viewport_width, "height": config.viewport_height}
            )
            await page.goto(config.url, timeout=timeout_ms)

        logger.info(f"Opened {page.url}")
        try:
            yield BrowserSurface(page)
        finally:
            await browser.close()
