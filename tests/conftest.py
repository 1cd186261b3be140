import asyncio
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

import cf_scraper.auth as auth_module
import cf_scraper.batch as batch_module
import cf_scraper.challenge as challenge_module


class FakeElement:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector
        self.value = ""
        self.clicks = 0
        self.pressed: List[str] = []

    async def click(self):
        self.clicks += 1
        hook = self.page.on_click.get(self.selector)
        if hook:
            hook(self.page)

    async def fill(self, value: str):
        self.value = value
        self.page.focused = self

    async def press(self, key: str):
        self.pressed.append(key)
        hook = self.page.on_press.get(key)
        if hook:
            hook(self.page)


class FakeKeyboard:
    """Types into whichever element was focused last"""

    def __init__(self, page: "FakePage"):
        self.page = page
        self.typed: List[str] = []

    async def type(self, text: str):
        self.typed.append(text)
        if self.page.focused is not None:
            self.page.focused.value += text


class FakePage:
    """
    Just enough of a Playwright page for the engine: a set of selectors
    that currently match, and hooks that mutate that set on interaction.
    """

    def __init__(
        self,
        present=(),
        url: str = "about:blank",
        html: str = "<html><body></body></html>",
        title: str = "",
        body: str = "",
    ):
        self.present = set(present)
        self.url = url
        self.html = html
        self.title_text = title
        self.body = body
        self.elements: Dict[str, FakeElement] = {}
        self.on_click: Dict[str, Callable[["FakePage"], None]] = {}
        self.on_press: Dict[str, Callable[["FakePage"], None]] = {}
        self.on_goto: Optional[Callable[["FakePage", str], None]] = None
        self.goto_failures = 0
        self.visited: List[str] = []
        self.settle_times_out = False
        self.closed = False
        self.focused: Optional[FakeElement] = None
        self.keyboard = FakeKeyboard(self)

    def element(self, selector: str) -> FakeElement:
        if selector not in self.elements:
            self.elements[selector] = FakeElement(self, selector)
        return self.elements[selector]

    async def query_selector(self, selector: str):
        if selector in self.present:
            return self.element(selector)
        return None

    async def goto(self, url: str, wait_until: str = "load", timeout: int = 0):
        self.visited.append(url)
        if self.goto_failures > 0:
            self.goto_failures -= 1
            raise PlaywrightError("net::ERR_CONNECTION_RESET")
        self.url = url
        if self.on_goto:
            self.on_goto(self, url)

    async def wait_for_function(self, expression: str, arg=None, timeout: int = 0):
        if any(selector in self.present for selector in arg or ()):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_selector(self, selector: str, timeout: int = 0, state: str = "visible"):
        if selector in self.present:
            return self.element(selector)
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_load_state(self, state: str = "load", timeout: int = 0):
        if self.settle_times_out:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def title(self) -> str:
        return self.title_text

    async def inner_text(self, selector: str, timeout: int = 0) -> str:
        return self.body

    async def content(self) -> str:
        return self.html

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page_factory: Callable[[], FakePage], cookies=None):
        self.page_factory = page_factory
        self.pages: List[FakePage] = []
        self.init_scripts: List[str] = []
        self.added_cookies: List[dict] = []
        self.jar: List[dict] = list(cookies or [])

    async def new_page(self) -> FakePage:
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def add_init_script(self, script: str):
        self.init_scripts.append(script)

    async def add_cookies(self, cookies):
        self.added_cookies.extend(cookies)
        self.jar.extend(cookies)

    async def cookies(self):
        return list(self.jar)


class FakeBrowser:
    def __init__(self, page_factory: Callable[[], FakePage]):
        self.page_factory = page_factory
        self.contexts: List[FakeContext] = []
        self.context_options: List[dict] = []

    async def new_context(self, **options) -> FakeContext:
        self.context_options.append(options)
        context = FakeContext(self.page_factory)
        self.contexts.append(context)
        return context


class FakeLauncher:
    """Stands in for AsyncCamoufox; counts launches and shutdowns"""

    def __init__(self, page_factory: Callable[[], FakePage] = FakePage):
        self.page_factory = page_factory
        self.launches = 0
        self.closes = 0
        self.browsers: List[FakeBrowser] = []

    def __call__(self, headless: bool):
        return self._launch()

    @asynccontextmanager
    async def _launch(self):
        self.launches += 1
        await asyncio.sleep(0)
        browser = FakeBrowser(self.page_factory)
        self.browsers.append(browser)
        try:
            yield browser
        finally:
            self.closes += 1


@pytest.fixture
def fake_launcher():
    return FakeLauncher()


@pytest.fixture
def no_delays(monkeypatch):
    """Make every human-like pause instant and record the requested ranges"""
    calls = []

    async def instant(delay_range):
        calls.append(delay_range)
        return 0.0

    for module in (auth_module, batch_module, challenge_module):
        monkeypatch.setattr(module, "human_delay", instant)
    return calls


PROBLEM_HTML = """
<html><body>
<div class="problem-statement">
  <div class="header">
    <div class="title">A. Array Sums</div>
    <div class="time-limit"><div class="property-title">time limit per test</div>2 seconds</div>
    <div class="memory-limit"><div class="property-title">memory limit per test</div>256 megabytes</div>
  </div>
  <div><p>You are given an array of n integers. Find a greedy way to sum them.</p></div>
  <div class="input-specification"><div class="section-title">Input</div><p>The first line contains n.</p></div>
  <div class="output-specification"><div class="section-title">Output</div><p>Print the sum.</p></div>
  <div class="sample-tests">
    <div class="section-title">Examples</div>
    <div class="sample-test">
      {samples}
    </div>
  </div>
  <div class="note"><div class="section-title">Note</div><p>1 + 2 = 3.</p></div>
</div>
{tags}
</body></html>
"""

DEFAULT_SAMPLES = """
      <div class="input"><div class="title">Input</div><pre><div class="test-example-line">2</div><div class="test-example-line">1 2</div></pre></div>
      <div class="output"><div class="title">Output</div><pre>3</pre></div>
"""


def make_problem_html(samples: str = DEFAULT_SAMPLES, tags: str = "") -> str:
    return PROBLEM_HTML.replace("{samples}", samples).replace("{tags}", tags)


@pytest.fixture
def problem_html():
    return make_problem_html


STATUS_HTML = """
<html><body>
<div class="datatable"><table class="status-frame-datatable">
<tr class="first-row"><th>#</th><th>When</th><th>Who</th><th>Problem</th><th>Lang</th><th>Verdict</th><th>Time</th><th>Memory</th></tr>
<tr data-submission-id="301">
  <td class="id-cell"><a class="view-source" href="/contest/2065/submission/301">301</a></td>
  <td class="status-small"><span class="format-time">Feb/10/2025 17:40</span></td>
  <td class="status-party-cell"><a href="/profile/newbie">newbie</a></td>
  <td class="status-small"><a href="/contest/2065/problem/A">A - Skibidus</a></td>
  <td>GNU G++20 13.2 (64 bit, winlibs)</td>
  <td class="status-cell status-verdict-cell" data-verdict="WRONG_ANSWER"><span class="verdict-rejected">Wrong answer on test 2</span></td>
  <td class="time-consumed-cell">31&nbsp;ms</td>
  <td class="memory-consumed-cell">0&nbsp;KB</td>
</tr>
<tr data-submission-id="302">
  <td class="id-cell"><a class="view-source" href="/contest/2065/submission/302">302</a></td>
  <td class="status-small"><span class="format-time">Feb/10/2025 17:39</span></td>
  <td class="status-party-cell"><a href="/profile/pythonista">pythonista</a></td>
  <td class="status-small"><a href="/contest/2065/problem/A">A - Skibidus</a></td>
  <td>PyPy 3-64</td>
  <td class="status-cell status-verdict-cell" data-verdict="OK"><span class="verdict-accepted">Accepted</span></td>
  <td class="time-consumed-cell">93&nbsp;ms</td>
  <td class="memory-consumed-cell">1200&nbsp;KB</td>
</tr>
<tr data-submission-id="303">
  <td class="id-cell"><a class="view-source" href="/contest/2065/submission/303">303</a></td>
  <td class="status-small"><span class="format-time">Feb/10/2025 17:38</span></td>
  <td class="status-party-cell"><a href="/profile/tourist">tourist</a></td>
  <td class="status-small"><a href="/contest/2065/problem/A">A - Skibidus</a></td>
  <td>GNU G++20 13.2 (64 bit, winlibs)</td>
  <td class="status-cell status-verdict-cell" data-verdict="OK"><span class="verdict-accepted">Accepted</span></td>
  <td class="time-consumed-cell">15&nbsp;ms</td>
  <td class="memory-consumed-cell">100&nbsp;KB</td>
</tr>
<tr data-submission-id="304">
  <td class="id-cell"><a class="view-source" href="/contest/2065/submission/304">304</a></td>
  <td class="status-small"><span class="format-time">Feb/10/2025 17:37</span></td>
  <td class="status-party-cell"><a href="/profile/Petr">Petr</a></td>
  <td class="status-small"><a href="/contest/2065/problem/A">A - Skibidus</a></td>
  <td>C++17 (GCC 7-32)</td>
  <td class="status-cell status-verdict-cell" data-verdict="OK"><span class="verdict-accepted">Accepted</span></td>
  <td class="time-consumed-cell">46&nbsp;ms</td>
  <td class="memory-consumed-cell">3900&nbsp;KB</td>
</tr>
<tr data-submission-id="305">
  <td class="id-cell">305</td>
  <td colspan="7">Hidden</td>
</tr>
</table></div>
</body></html>
"""

SUBMISSION_HTML = """
<html><body>
<div class="roundbox">
<pre id="program-source-text" class="prettyprint linenums program-source"><ol class="linenums"><li>#include &lt;iostream&gt;</li><li>int main() { std::cout &lt;&lt; 3; }</li></ol></pre>
</div>
</body></html>
"""
