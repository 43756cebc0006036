"""Presentation envelope wrapped around assembled section markup.

Everything here is a pure function of its inputs so identical sections
produce byte-identical pages.
"""

from __future__ import annotations

import colorsys
import json
import re
from html import escape

from pydantic import BaseModel

TAILWIND_CDN = "https://cdn.tailwindcss.com"
_HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class PageMeta(BaseModel):
    """SEO fields for the page head."""

    title: str
    description: str = ""
    keywords: str = ""
    canonical_url: str | None = None
    brand_name: str | None = None
    language: str = "en"


def normalize_hex(color: str | None) -> str | None:
    """Return ``#rrggbb`` in lower case, or None if ``color`` is not a hex color."""
    if not color:
        return None
    match = _HEX_COLOR_RE.match(color.strip())
    if match is None:
        return None
    digits = match.group(1).lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


def _shift(color: str, percent: int) -> str:
    value = int(color[1:], 16)
    amount = round(2.55 * percent)
    channels = [(value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF]
    shifted = [max(0, min(255, channel + amount)) for channel in channels]
    return "#" + "".join(f"{channel:02x}" for channel in shifted)


def darken(color: str, percent: int) -> str:
    return _shift(color, -percent)


def lighten(color: str, percent: int) -> str:
    return _shift(color, percent)


def hue_saturation(color: str) -> tuple[int, int]:
    """Hue in degrees and saturation in percent of a ``#rrggbb`` color."""
    red, green, blue = (int(color[i : i + 2], 16) / 255 for i in (1, 3, 5))
    hue, _lightness, saturation = colorsys.rgb_to_hls(red, green, blue)
    return round(hue * 360), round(saturation * 100)


def brand_styles(color: str) -> str:
    hue, sat = hue_saturation(color)
    return f"""
    :root {{
      --brand-color: {color};
      --brand-color-dark: {darken(color, 15)};
      --brand-color-light: {lighten(color, 90)};
      --brand-50: hsl({hue}, {sat}%, 97%);
      --brand-100: hsl({hue}, {sat}%, 92%);
      --brand-200: hsl({hue}, {sat}%, 85%);
      --brand-500: hsl({hue}, {sat}%, 50%);
      --brand-600: hsl({hue}, {sat}%, 45%);
      --brand-700: hsl({hue}, {sat}%, 38%);
    }}
    .bg-brand-icon {{ background-color: var(--brand-color); }}
    .bg-brand-bg {{ background-color: var(--brand-color-light); }}
    .text-brand {{ color: var(--brand-color); }}
    .border-brand {{ border-color: var(--brand-color); }}
    .btn-primary {{
      background: linear-gradient(135deg, var(--brand-color), var(--brand-color-dark));
      color: white;
      font-weight: 600;
      padding: 12px 24px;
      border-radius: 12px;
      display: inline-flex;
      align-items: center;
      gap: 0.5rem;
    }}
    .btn-secondary {{
      background-color: white;
      color: #374151;
      font-weight: 600;
      padding: 12px 24px;
      border-radius: 12px;
      border: 1.5px solid #e5e5e5;
    }}
    .faq-content {{ display: none; }}
    .faq-item.active .faq-content {{ display: block; }}
    .faq-item.active .faq-icon {{ transform: rotate(180deg); }}
    .status-yes {{ color: var(--brand-color); }}
    .status-no {{ color: #a3a3a3; }}
    .status-partial {{ color: #737373; }}
    article[id^="product-"] {{ transition: all 0.3s ease; }}
    article[id^="product-"]:hover {{ transform: translateY(-4px); }}
"""


_COMMON_STYLES = """
    html { scroll-behavior: smooth; }
    .scroll-top-btn {
      opacity: 0;
      pointer-events: none;
      transition: all 0.3s ease;
      background: white;
      box-shadow: 0 10px 15px -3px rgba(0, 0, 0, 0.1);
    }
    .scroll-top-btn.visible { opacity: 1; pointer-events: auto; }
"""

PAGE_STYLES: dict[str, str] = {
    "alternative": _COMMON_STYLES
    + """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; color: #171717; }
    .table-row-alt:nth-child(even) { background-color: #fafafa; }
""",
    "listicle": _COMMON_STYLES
    + """
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;600;700&display=swap');
    body { font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif; color: #171717; }
    .card { background: white; border: 1px solid #e5e5e5; border-radius: 16px; }
    .badge { display: inline-block; padding: 4px 12px; border-radius: 9999px; font-size: 12px; }
""",
}

SCROLL_TOP_BUTTON = """<button id="scrollTop"
    class="scroll-top-btn fixed bottom-6 right-6 w-12 h-12 rounded-full flex items-center justify-center z-50"
    onclick="window.scrollTo({top:0,behavior:'smooth'})" aria-label="Scroll to top">
      <svg class="w-5 h-5 text-gray-600" fill="none" stroke="currentColor" viewBox="0 0 24 24">
        <path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M5 10l7-7m0 0l7 7m-7-7v18"/>
      </svg>
    </button>"""

SCROLL_TOP_SCRIPT = """<script>
      const scrollBtn = document.getElementById('scrollTop');
      window.addEventListener('scroll', () => {
        scrollBtn.classList.toggle('visible', window.scrollY > 500);
      });
    </script>"""


def meta_tags(meta: PageMeta) -> str:
    title = escape(meta.title)
    description = escape(meta.description)
    tags = [
        '<meta charset="UTF-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">',
        f"<title>{title}</title>",
        f'<meta name="description" content="{description}">' if meta.description else "",
        f'<meta name="keywords" content="{escape(meta.keywords)}">' if meta.keywords else "",
        f'<meta property="og:title" content="{title}">',
        f'<meta property="og:description" content="{description}">' if meta.description else "",
        '<meta property="og:type" content="article">',
        f'<meta property="og:url" content="{escape(meta.canonical_url)}">' if meta.canonical_url else "",
        '<meta name="twitter:card" content="summary_large_image">',
        f'<meta name="twitter:title" content="{title}">',
        f'<meta name="twitter:description" content="{description}">' if meta.description else "",
        f'<link rel="canonical" href="{escape(meta.canonical_url)}">' if meta.canonical_url else "",
    ]
    return "\n    ".join(tag for tag in tags if tag)


def structured_data(meta: PageMeta) -> str:
    """JSON-LD ``Article`` block for the page."""
    data: dict[str, object] = {
        "@context": "https://schema.org",
        "@type": "Article",
        "headline": meta.title,
        "inLanguage": meta.language,
    }
    if meta.description:
        data["description"] = meta.description
    if meta.canonical_url:
        data["url"] = meta.canonical_url
        data["mainEntityOfPage"] = {"@type": "WebPage", "@id": meta.canonical_url}
    if meta.brand_name:
        data["publisher"] = {"@type": "Organization", "name": meta.brand_name}
    payload = json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False).replace("</", "<\\/")
    return f'<script type="application/ld+json">\n{payload}\n    </script>'


def products_list(cards_html: list[str]) -> str:
    """Wrap consecutive product cards in one listing container."""
    cards = "\n".join(cards_html)
    return f"""<section id="products-list" class="py-16 md:py-20 px-4 md:px-6 bg-gray-50">
    <div class="max-w-6xl mx-auto">
      <h2 class="text-2xl md:text-3xl font-bold text-gray-900 text-center mb-12">Detailed Reviews</h2>
      <div class="space-y-6 md:space-y-8">
{cards}
      </div>
    </div>
  </section>"""


def render_page(
    body: str,
    meta: PageMeta,
    brand_color: str,
    page_type: str,
    header: str | None = None,
    footer: str | None = None,
) -> str:
    """Wrap ``body`` in the full HTML document.

    The owner's site ``header`` goes right after ``<body>`` and ``footer``
    right after ``</main>``; either is left out when blank.
    """
    styles = PAGE_STYLES.get(page_type, PAGE_STYLES["alternative"])
    site_header = f"    {header.strip()}\n" if header and header.strip() else ""
    site_footer = f"    {footer.strip()}\n" if footer and footer.strip() else ""
    return f"""<!DOCTYPE html>
<html lang="{escape(meta.language)}">
<head>
    {meta_tags(meta)}
    <script src="{TAILWIND_CDN}"></script>
    <script>
      tailwind.config = {{ theme: {{ extend: {{ colors: {{ brand: '{brand_color}' }} }} }} }}
    </script>
    <style>{brand_styles(brand_color)}{styles}    </style>
    {structured_data(meta)}
</head>
<body class="antialiased text-gray-900 bg-white">
{site_header}    <main>
{body}
    </main>
{site_footer}    {SCROLL_TOP_BUTTON}
    {SCROLL_TOP_SCRIPT}
</body>
</html>
"""
