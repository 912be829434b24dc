from typing import Dict

from signup_widget.schema import ResolvedTheme

FONT_STACK = (
    "ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial, Noto Sans, "
    "Apple Color Emoji, Segoe UI Emoji"
)

_BASE_CSS = (
    ":root{--p:%(primary)s}"
    "@keyframes cs-spin{to{transform:rotate(360deg)}}"
    "@keyframes float{0%%{transform:translateY(0)}50%%{transform:translateY(-8px)}100%%{transform:translateY(0)}}"
    ".cs-error{color:#ef4444;font-size:12px;margin-top:6px}"
    ".cs-input-error{border-color:#ef4444 !important}"
    ".cs-form-error{color:#b91c1c;font-size:13px}"
    ".cs-success{padding:16px;border:1px solid #d1fae5;background:#ecfdf5;color:#065f46;border-radius:10px;margin-top:8px}"
    ".cs-row-group{display:grid;grid-template-columns:1fr 1fr;gap:14px}"
    "@media (max-width:640px){.cs-row-group{grid-template-columns:1fr !important}}"
    ".cs-choice{display:flex;align-items:center;gap:8px;font-size:14px;margin:4px 0}"
)


def css_url(url: str) -> str:
    escaped = url.replace("\\", "\\\\").replace('"', '\\"')
    return f'url("{escaped}")'


def base_css(theme: ResolvedTheme) -> str:
    return _BASE_CSS % {"primary": theme.primary_color}


def frame_css(theme: ResolvedTheme) -> Dict[str, str]:
    """Inline styles for the page chrome around the fields."""
    split = theme.layout == "split"
    aside = "display:flex;align-items:center;justify-content:center;position:relative;overflow:hidden"
    if theme.split_image_url:
        aside += f";background-image:{css_url(theme.split_image_url)};background-size:cover;background-position:center"
    else:
        aside += (
            f";background:radial-gradient(1200px 600px at -10% -20%, {theme.primary_color} 0%, transparent 60%), "
            "radial-gradient(800px 400px at 120% 120%, #22d3ee55 0%, transparent 60%)"
        )
    return {
        "body": f"background:{theme.page_background_color};margin:0;font-family:{FONT_STACK}",
        "loader": (
            "position:fixed;inset:0;background:#ffffff;display:flex;align-items:center;"
            "justify-content:center;z-index:2147483647"
        ),
        "spinner": (
            "width:40px;height:40px;border:4px solid #e5e7eb;border-top-color:var(--p);"
            "border-radius:50%;animation:cs-spin 1s linear infinite"
        ),
        "page": (
            "min-height:100vh;display:grid;grid-template-columns:"
            + ("1.1fr .9fr" if split else "1fr")
            + ";align-items:stretch;gap:0"
        ),
        "aside": aside,
        "overlay": (
            "position:absolute;inset:0;"
            "background:radial-gradient(1200px 600px at -10% -20%, rgba(37,99,235,.35) 0%, transparent 60%)"
        ),
        "orb": (
            "width:160px;height:160px;border-radius:50%;background:linear-gradient(135deg, #fff, #ffffff55);"
            "opacity:0.4;animation:float 6s ease-in-out infinite;filter:blur(4px)"
        ),
        "root": "display:flex;align-items:center;justify-content:center;padding:48px 16px",
        "card": (
            f"width:100%;max-width:520px;background:{theme.form_background_color};"
            "backdrop-filter:saturate(180%) blur(8px);border:1px solid #e5e7eb;border-radius:16px;"
            "box-shadow:0 20px 30px -15px rgba(0,0,0,.2);padding:28px"
        ),
        "title": (
            f"font-size:{theme.title_font_size}px;font-weight:{theme.title_font_weight};"
            f"color:{theme.title_color};margin:0 0 6px 0"
        ),
        "subtitle": (
            f"font-size:{theme.subtitle_font_size}px;font-weight:{theme.subtitle_font_weight};"
            f"color:{theme.subtitle_color};margin:0 0 18px 0"
        ),
        "form": "display:grid;gap:14px",
        "error": "display:none",
        "button": (
            f"height:46px;border:0;border-radius:{theme.button_radius}px;background:{theme.button_bg};"
            f"color:{theme.button_color};font-weight:700;letter-spacing:.02em;cursor:pointer;margin-top:8px;"
            "transition:transform .12s ease, opacity .12s ease;width:100%"
        ),
    }
