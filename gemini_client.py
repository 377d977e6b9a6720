import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from typing import Dict, List, Optional, Union
from config import settings
import json
import logging

logger = logging.getLogger(__name__)

class AIGatewayError(Exception):
    """Generic AI gateway failure."""
    status_code = 500

class RateLimitedError(AIGatewayError):
    status_code = 429

class CreditsExhaustedError(AIGatewayError):
    status_code = 402

def classify_gateway_error(exc: Exception) -> AIGatewayError:
    """Map a gateway exception to RateLimited / CreditsExhausted / generic."""
    if isinstance(exc, AIGatewayError):
        return exc

    code = getattr(exc, "code", None)
    if isinstance(exc, google_exceptions.TooManyRequests) or code == 429:
        return RateLimitedError("Rate limit exceeded. Please try again in a moment.")
    if code == 402:
        return CreditsExhaustedError("AI credits exhausted. Please add credits to continue.")
    return AIGatewayError("Failed to get AI response")

def get_gemini_client(system_instruction: Optional[str] = None):
    """Initialize and return Gemini client."""
    if not settings.GEMINI_API_KEY:
        raise AIGatewayError("AI service is not configured")

    genai.configure(api_key=settings.GEMINI_API_KEY)
    return genai.GenerativeModel(settings.GEMINI_MODEL, system_instruction=system_instruction)

def generate_text(
    prompt: Union[str, List[Dict]],
    system_instruction: Optional[str] = None
) -> str:
    """
    Send a prompt (or a list of chat turns) to the gateway and return text.

    Raises:
        RateLimitedError, CreditsExhaustedError, AIGatewayError
    """
    model = get_gemini_client(system_instruction)

    try:
        response = model.generate_content(prompt)
    except Exception as e:
        logger.error(f"[AI] Gateway call failed: {str(e)}")
        raise classify_gateway_error(e) from e

    try:
        text = response.text
    except ValueError as e:
        # Blocked or empty candidates
        logger.error(f"[AI] Empty AI response: {str(e)}")
        raise AIGatewayError("Empty AI response") from e

    if not text or not text.strip():
        raise AIGatewayError("Empty AI response")
    return text.strip()

def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code block (``` or ```json)."""
    cleaned = content.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()

def parse_json_content(content: str) -> Union[Dict, List]:
    """Parse a JSON answer that may be wrapped in a code block."""
    try:
        return json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        logger.error(f"[AI] Failed to parse AI response as JSON: {str(e)}")
        raise AIGatewayError("Failed to parse AI response") from e

def generate_json(prompt: str, system_instruction: Optional[str] = None) -> Union[Dict, List]:
    """Send a prompt and parse the answer as JSON."""
    return parse_json_content(generate_text(prompt, system_instruction))

def to_gemini_history(messages: List[Dict]) -> List[Dict]:
    """Convert user/assistant chat turns into Gemini contents."""
    return [
        {
            "role": "model" if m["role"] == "assistant" else "user",
            "parts": [m["content"]]
        }
        for m in messages
    ]
