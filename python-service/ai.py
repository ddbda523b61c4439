"""
AI proxies

- chat: construction assistant via the Lovable AI gateway (OpenAI-compatible)
- generate_floor_plan: Gemini image generation, returned as a data: URL

Provider failures raise ProviderError with a ProviderErrorKind so the API
can answer 429 / 402 / 502.
"""

import os
from enum import Enum
from typing import Optional

import httpx

from errors import ValidationError

# API Configuration
LOVABLE_API_KEY = os.getenv("LOVABLE_API_KEY")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

CHAT_API_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
CHAT_MODEL = "google/gemini-2.5-flash"
GEMINI_IMAGE_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash-preview-image-generation:generateContent"

CHAT_SYSTEM_PROMPT = """You are an AI Construction Assistant specializing in helping users with construction projects. You provide helpful advice on:

- Material calculations and quantity estimation
- Finding the best deals and suppliers
- Hiring qualified engineers, contractors, and construction professionals
- Project planning and timeline management
- Construction best practices and safety guidelines

Keep responses practical, professional, and focused on construction topics. When appropriate, suggest specific actions like using the calculator tool, browsing the marketplace, or hiring experts."""


class ProviderErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    PAYMENT_REQUIRED = "payment_required"
    PROVIDER_ERROR = "provider_error"


class ProviderError(Exception):
    def __init__(self, kind: ProviderErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)


def classify_status(status_code: int) -> ProviderErrorKind:
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code == 402:
        return ProviderErrorKind.PAYMENT_REQUIRED
    return ProviderErrorKind.PROVIDER_ERROR


def _error_details(response: httpx.Response) -> str:
    """Provider's error.message if the body is JSON, else the raw text"""
    try:
        return response.json().get("error", {}).get("message") or response.text
    except (ValueError, AttributeError):
        return response.text


def _raise_for_provider(provider: str, response: httpx.Response):
    kind = classify_status(response.status_code)
    print(f"[AI] {provider} error: {response.status_code} - {response.text[:200]}")

    if kind == ProviderErrorKind.RATE_LIMITED:
        raise ProviderError(kind, "Rate limit exceeded. Please try again later.")
    if kind == ProviderErrorKind.PAYMENT_REQUIRED:
        raise ProviderError(kind, "Payment required. Please add credits to your AI workspace.")
    raise ProviderError(kind, f"{provider} error: {_error_details(response)}")


# ═══════════════════════════════════════════════════════════════
# AI ASSISTANT
# ═══════════════════════════════════════════════════════════════


async def chat(
    message: str,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Send one user message with the construction system prompt, return the reply"""
    if not message or not message.strip():
        raise ValidationError("message", "Message is required")

    api_key = api_key or LOVABLE_API_KEY
    if not api_key:
        raise ProviderError(
            ProviderErrorKind.PROVIDER_ERROR, "LOVABLE_API_KEY is not configured"
        )

    print(f"[AI] Chat request ({len(message)} chars)")

    try:
        async with httpx.AsyncClient(timeout=60.0, transport=transport) as client:
            response = await client.post(
                CHAT_API_URL,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": CHAT_MODEL,
                    "messages": [
                        {"role": "system", "content": CHAT_SYSTEM_PROMPT},
                        {"role": "user", "content": message},
                    ],
                    "temperature": 0.7,
                    "max_tokens": 1000,
                },
            )
    except httpx.HTTPError as e:
        raise ProviderError(ProviderErrorKind.PROVIDER_ERROR, f"AI gateway unreachable: {e}")

    if not response.is_success:
        _raise_for_provider("AI gateway", response)

    try:
        content = response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        raise ProviderError(
            ProviderErrorKind.PROVIDER_ERROR, "Invalid response from AI gateway"
        )

    print("[AI] Chat response received")
    return content


# ═══════════════════════════════════════════════════════════════
# FLOOR PLAN GENERATOR
# ═══════════════════════════════════════════════════════════════


def build_floor_plan_prompt(
    prompt: Optional[str] = None,
    rooms: Optional[int] = None,
    sqft: Optional[int] = None,
    style: Optional[str] = None,
) -> str:
    extra = f"- Additional requirements: {prompt}\n" if prompt else ""
    return f"""Create a professional architectural floor plan in technical drawing style.

SPECIFICATIONS:
- House size: {sqft or 2000} square feet
- Bedrooms: {rooms or 3}
- Style: {style or 'modern'}
{extra}
DRAWING REQUIREMENTS:
- Use clean black lines on white background
- Draw walls as double lines (8-12 inches thick)
- Show all doors with proper swing arcs
- Include windows as breaks in walls with sill indicators
- Label each room clearly (e.g., "Master Bedroom 14'x16'")
- Add room dimensions in feet and inches
- Include furniture layout (beds, sofas, tables, kitchen appliances)
- Show kitchen counters, bathroom fixtures, and closets
- Add compass rose indicating North direction
- Include scale bar (1/4" = 1'-0")

LAYOUT STANDARDS:
- Main entrance with foyer/entry area
- Open-concept living/dining/kitchen if modern style
- Master bedroom with en-suite bathroom
- Secondary bedrooms with adequate closet space
- Proper hallway widths (36" minimum)
- Standard door widths (30"-36")
- Realistic room proportions and flow

Style: Clean architectural drafting, professional, black and white technical drawing."""


async def generate_floor_plan(
    prompt: Optional[str] = None,
    rooms: Optional[int] = None,
    sqft: Optional[int] = None,
    style: Optional[str] = None,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Returns the first generated image as data:{mime};base64,{data}"""
    api_key = api_key or GEMINI_API_KEY
    if not api_key:
        raise ProviderError(
            ProviderErrorKind.PROVIDER_ERROR, "GEMINI_API_KEY is not configured"
        )

    print(f"[AI] Generating floor plan: {sqft or 2000} sqft, {rooms or 3} bedrooms")

    try:
        async with httpx.AsyncClient(timeout=120.0, transport=transport) as client:
            response = await client.post(
                f"{GEMINI_IMAGE_URL}?key={api_key}",
                json={
                    "contents": [
                        {
                            "role": "user",
                            "parts": [
                                {"text": build_floor_plan_prompt(prompt, rooms, sqft, style)}
                            ],
                        }
                    ],
                    "generationConfig": {
                        "temperature": 0.4,
                        "responseModalities": ["IMAGE"],
                    },
                },
            )
    except httpx.HTTPError as e:
        raise ProviderError(ProviderErrorKind.PROVIDER_ERROR, f"Gemini unreachable: {e}")

    if not response.is_success:
        _raise_for_provider("Gemini API", response)

    try:
        data = response.json()
    except ValueError:
        raise ProviderError(ProviderErrorKind.PROVIDER_ERROR, "Invalid response from Gemini")

    for candidate in data.get("candidates") or []:
        for part in (candidate.get("content") or {}).get("parts") or []:
            inline = part.get("inlineData") or {}
            if inline.get("data"):
                print("[AI] Floor plan image generated")
                return f"data:{inline.get('mimeType') or 'image/png'};base64,{inline['data']}"

    raise ProviderError(ProviderErrorKind.PROVIDER_ERROR, "No image generated in response")
