"""Browser identity pools and the fingerprint-masking init script

The browser is Camoufox, a Gecko build, so every value here describes
Firefox on Windows. Camoufox is launched with the same OS so its own
lower-level spoofing agrees with what this script reports.
"""

import random
from dataclasses import dataclass
from typing import Dict, Optional

# OS handed to Camoufox; must match the platform in USER_AGENTS
CAMOUFOX_OS = "windows"

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:135.0) Gecko/20100101 Firefox/135.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:134.0) Gecko/20100101 Firefox/134.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
)

VIEWPORTS = (
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
)

EXTRA_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Upgrade-Insecure-Requests": "1",
}

# Runs before any page script on every document of the context. Only
# properties Gecko already exposes are redefined; navigator.deviceMemory
# and friends stay absent as they are in a real Firefox.
FINGERPRINT_MASK_SCRIPT = """
(() => {
    const define = (target, prop, value) => {
        if (!target || !(prop in target)) return;
        try {
            Object.defineProperty(target, prop, { get: () => value, configurable: true });
        } catch (e) {}
    };

    define(navigator, 'webdriver', false);
    define(navigator, 'languages', ['en-US', 'en']);
    define(navigator, 'platform', 'Win32');
    define(navigator, 'oscpu', 'Windows NT 10.0; Win64; x64');
    define(navigator, 'hardwareConcurrency', 8);
    define(navigator, 'deviceMemory', 8);

    // Firefox lists the built-in PDF viewer under these five names
    if (navigator.plugins && navigator.plugins.length === 0) {
        define(navigator, 'plugins', [
            'PDF Viewer',
            'Chrome PDF Viewer',
            'Chromium PDF Viewer',
            'Microsoft Edge PDF Viewer',
            'WebKit built-in PDF',
        ].map((name) => ({ name, filename: 'internal-pdf-viewer' })));
    }

    const patchWebGL = (proto) => {
        if (!proto) return;
        const getParameter = proto.getParameter;
        proto.getParameter = function (parameter) {
            if (parameter === 37445) return 'Google Inc. (Intel)';
            if (parameter === 37446) return 'ANGLE (Intel, Intel(R) UHD Graphics Direct3D11 vs_5_0 ps_5_0)';
            return getParameter.call(this, parameter);
        };
    };
    patchWebGL(window.WebGLRenderingContext && WebGLRenderingContext.prototype);
    patchWebGL(window.WebGL2RenderingContext && WebGL2RenderingContext.prototype);

    for (const key of ['__webdriver_script_fn', '__selenium_unwrapped', '__fxdriver_unwrapped']) {
        try { delete window[key]; } catch (e) {}
    }
})();
"""


@dataclass(frozen=True)
class StealthProfile:
    user_agent: str
    viewport: Dict[str, int]

    def context_options(self) -> Dict:
        """Keyword arguments for ``Browser.new_context``"""
        return {
            "user_agent": self.user_agent,
            "viewport": dict(self.viewport),
            "locale": "en-US",
            "extra_http_headers": dict(EXTRA_HEADERS),
        }


def pick_profile(rng: Optional[random.Random] = None) -> StealthProfile:
    """Draw a user agent and a viewport from the fixed pools"""
    rng = rng or random
    return StealthProfile(
        user_agent=rng.choice(USER_AGENTS),
        viewport=rng.choice(VIEWPORTS),
    )
