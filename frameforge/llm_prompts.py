from __future__ import annotations

from typing import Iterable, Optional

from frameforge.models import ChatTurn

IMAGE_SYSTEM_PROMPT = (
    "You are a senior front-end engineer who turns hand-drawn UI sketches into production-ready markup. "
    "Study the attached sketch and reproduce its layout, hierarchy and component placement. "
    "Requirements: use semantic HTML5 landmarks (header, nav, main, section, footer); "
    "make every control accessible (labels for inputs, alt text for images, visible focus states, "
    "sufficient colour contrast, aria attributes only where native semantics are missing); "
    "build a responsive layout with flexbox or grid that works from 320px phones to wide desktops; "
    "use placeholder copy where the sketch shows scribbles or wavy lines, and neutral coloured blocks for images. "
    "Do not reference external scripts, stylesheets, fonts or images. "
    "Respond with a single JSON object and nothing else, shaped exactly as "
    '{"html": "<body markup without <html>, <head> or <body> tags>", "css": "<stylesheet>", "js": "<optional script or empty string>"}. '
    "No markdown fences. No explanations."
)

JSON_REPAIR_SYSTEM_PROMPT = (
    "Your previous answer could not be parsed. "
    "Return ONLY one valid JSON object with string fields html, css and js (js may be an empty string). "
    "Escape double quotes and newlines inside strings. "
    "Do not wrap the object in markdown fences and do not add any text before or after it."
)

HTML_EDIT_SYSTEM_PROMPT = (
    "You edit a web page for a user. You are given the page's current HTML and an instruction. "
    "Apply the instruction and return the FULL updated document, starting with <!DOCTYPE html> "
    "and including <html>, <head> and <body>. Keep everything the instruction does not mention unchanged. "
    "Keep CSS and JavaScript inline. Preserve accessibility and responsive behaviour. "
    "Respond with the HTML document only."
)

HTML_CREATE_SYSTEM_PROMPT = (
    "You build web pages from plain-language descriptions. "
    "Return one complete, self-contained HTML document starting with <!DOCTYPE html>, "
    "with inline CSS in a <style> tag and any JavaScript in an inline <script>. "
    "Use semantic, accessible and responsive markup. Respond with the HTML document only."
)

HTML_ONLY_SYSTEM_PROMPT = (
    "Respond with HTML ONLY. Your entire answer must be a complete HTML document that begins with "
    "<!DOCTYPE html> and ends with </html>. Do not explain, apologise, summarise or ask questions. "
    "Do not use markdown. Any text that is not HTML is an error."
)

CANVAS_ASSISTANT_SYSTEM_PROMPT = (
    "You are the in-app assistant for a sketch-to-UI tool. Users draw wireframes on a canvas "
    "(rectangles, text, arrows, freehand strokes) and press Generate to turn the sketch into HTML. "
    "Answer questions about using the canvas and the generator briefly and concretely. "
    "Do not produce HTML in this answer."
)


def format_history(turns: Iterable[ChatTurn]) -> str:
    lines = [f"{turn.role}: {turn.content.strip()}" for turn in turns if turn.content and turn.content.strip()]
    return "\n".join(lines)


def _with_history(body: str, history: str) -> str:
    if not history:
        return body
    return f"Conversation so far:\n{history}\n\n{body}"


def build_image_prompt(prompt_hint: str) -> str:
    hint = (prompt_hint or "").strip()
    base = "Convert the attached sketch into html, css and js."
    if hint:
        return f"{base}\nDesigner notes: {hint}"
    return base


def build_repair_prompt(previous_output: str, error_detail: Optional[str]) -> str:
    # Long outputs are clipped; the model only needs enough to recover the structure
    clipped = (previous_output or "").strip()[:12000]
    reason = error_detail or "unparseable output"
    if not clipped:
        return f"Parser error: {reason}\n\nYour previous answer was empty. Answer again as JSON."
    return (
        f"Parser error: {reason}\n\n"
        "Previous answer:\n"
        f"{clipped}\n\n"
        'Return the same content as {"html": ..., "css": ..., "js": ...}.'
    )


def build_edit_prompt(instruction: str, current_html: Optional[str], history: str = "") -> str:
    if current_html and current_html.strip():
        body = (
            "Current HTML:\n"
            f"{current_html.strip()}\n\n"
            f"Instruction: {instruction.strip()}"
        )
    else:
        body = f"Page description: {instruction.strip()}"
    return _with_history(body, history)


def build_chat_prompt(instruction: str, history: str = "") -> str:
    return _with_history(f"Question: {instruction.strip()}", history)
