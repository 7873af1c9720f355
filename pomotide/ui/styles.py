"""QSS stylesheet and phase colors for Pomotide."""

from __future__ import annotations

from ..timer.phases import TimerPhase

# ── phase colors (ring gradient pairs) ───────────────────────────────────

PHASE_COLORS: dict[TimerPhase, tuple[str, str]] = {
    TimerPhase.WORK:        ("#EF4444", "#F87171"),   # red
    TimerPhase.SHORT_BREAK: ("#22C55E", "#4ADE80"),   # green
    TimerPhase.LONG_BREAK:  ("#3B82F6", "#60A5FA"),   # blue
}

PAUSED_COLORS: tuple[str, str] = ("#6C7086", "#585B70")   # desaturated gray

PALETTE: dict[str, str] = {
    "bg":           "#1A1A2E",
    "bg_secondary": "#232340",
    "accent":       "#EF4444",
    "text":         "#E2E2F0",
    "text_muted":   "#7A7A9A",
    "danger":       "#F38BA8",
    "border":       "#313154",
}


# ── QSS builder ───────────────────────────────────────────────────────


def build_stylesheet(palette: dict[str, str] = PALETTE) -> str:
    p = palette
    return f"""
    /* ── global ─────────────────────────────────── */
    QWidget {{
        background-color: {p['bg']};
        color: {p['text']};
        font-family: "Helvetica Neue", Arial;
        font-size: 14px;
    }}

    /* ── buttons ─────────────────────────────────── */
    QPushButton {{
        background-color: {p['bg_secondary']};
        color: {p['text']};
        border: 1px solid {p['border']};
        border-radius: 10px;
        padding: 10px 24px;
        font-size: 14px;
        font-weight: 600;
    }}

    QPushButton:checked {{
        border-color: {p['accent']};
        color: {p['accent']};
    }}

    QPushButton#primaryButton {{
        background-color: {p['accent']};
        color: {p['bg']};
        border: none;
        font-size: 17px;
        padding: 14px 40px;
        border-radius: 12px;
        font-weight: 700;
    }}

    QPushButton#secondaryButton {{
        background-color: transparent;
        color: {p['text_muted']};
        border: 1px solid {p['border']};
        font-size: 13px;
        padding: 8px 16px;
        border-radius: 8px;
    }}

    QPushButton#dangerButton {{
        background-color: transparent;
        color: {p['danger']};
        border: 1px solid {p['danger']};
        font-size: 13px;
        padding: 8px 16px;
        border-radius: 8px;
    }}

    /* ── frame / card ────────────────────────────── */
    QFrame#card {{
        background-color: {p['bg_secondary']};
        border: 1px solid {p['border']};
        border-radius: 12px;
    }}

    /* ── status bar ──────────────────────────────── */
    QStatusBar {{
        background-color: {p['bg']};
        color: {p['text_muted']};
        font-size: 12px;
        border-top: 1px solid {p['border']};
    }}
    """
