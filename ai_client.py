import logging
from typing import Dict, List, Optional

import requests

from errors import UpstreamModelError

logger = logging.getLogger("ai-client")


INTENT_SYSTEM_PROMPT = (
  "You are an assistant that understands Tamil and converts spoken Tamil into a detailed website "
  "intent in English. Always elaborate dynamically, include possible features, sections, and "
  "describe the purpose of the site in multiple sentences."
)

SITE_FILES = ["index.html", "style.css", "script.js", "server.js", "package.json"]

SITE_SYSTEM_PROMPT = """
You are a coding assistant that generates complete, production-ready multi-file websites based on user intent.

Always:
- Produce professional, responsive HTML using Tailwind CSS via CDN (never use PostCSS or @import).
- Include:
  - index.html with multiple sections
  - style.css for extra custom styles
  - script.js for interactivity (animations, smooth scroll, etc.)
  - server.js using Express to serve static files
  - package.json with correct dependencies and a start script
- Each image must have a unique static Unsplash image URL (https://images.unsplash.com/...) with parameters ?w=800&h=600&fit=crop
- Include alt text for each image.
- Use Tailwind classes: object-cover rounded-lg mb-4 w-full h-64
- Ensure all images are visible and evenly spaced. If a section (like Services, Products, or Team) contains
  multiple cards, each card must use a different static Unsplash CDN image URL.
- Fill sections with relevant sample content so the site feels complete.
- Avoid React or build tools unless the user explicitly requests them.
- Each navbar link must be an anchor tag linking to a matching section ID on the page.
- Add smooth scrolling for anchor navigation using CSS or JavaScript.
- Keep filenames consistent with references in the code.

Format the output EXACTLY as:
--- index.html ---
<code>
--- style.css ---
<code>
--- script.js ---
<code>
--- server.js ---
<code>
--- package.json ---
<code>
""".strip()


class ChatClient:
  """Minimal client for an OpenAI-compatible chat completions endpoint.

  One POST per call, bounded by ``timeout`` seconds. Nothing is retried:
  any transport error, HTTP error or malformed body is logged here and
  raised as UpstreamModelError with a generic message.
  """

  def __init__(self, api_key: Optional[str], base_url: str = "https://api.openai.com/v1", timeout: float = 120.0,
               intent_model: str = "gpt-4o-mini", code_model: str = "gpt-4o"):
    if not api_key:
      logger.warning("OPENAI_API_KEY not set. Model calls will fail until it is provided.")
    self.api_key = api_key
    self.url = base_url.rstrip("/") + "/chat/completions"
    self.timeout = timeout
    self.intent_model = intent_model
    self.code_model = code_model

  def complete(self, messages: List[Dict[str, str]], model: str, temperature: float = 0.4, max_tokens: int = 500) -> str:
    if not self.api_key:
      raise UpstreamModelError("Model API key is not configured")
    payload = {"model": model, "temperature": temperature, "max_tokens": max_tokens, "messages": messages}
    headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
    try:
      resp = requests.post(self.url, headers=headers, json=payload, timeout=self.timeout)
      try:
        resp.raise_for_status()
      except requests.HTTPError:
        logger.error("LLM request failed: status=%s body=%.500s", resp.status_code, resp.text)
        raise
      data = resp.json()
    except requests.Timeout as e:
      logger.error("LLM request timed out after %ss", self.timeout)
      raise UpstreamModelError("Model request timed out") from e
    except (requests.RequestException, ValueError) as e:
      logger.exception("LLM request error")
      raise UpstreamModelError("Model request failed") from e

    try:
      content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
      logger.error("Unexpected LLM response shape: %.500s", data)
      raise UpstreamModelError("Model returned an unexpected response") from e
    if content is None:
      raise UpstreamModelError("Model returned no content")
    return content

  def detect_intent(self, tamil_text: str) -> str:
    messages = [
      {"role": "system", "content": INTENT_SYSTEM_PROMPT},
      {"role": "user", "content": f'Tamil Input: "{tamil_text}". What kind of website does the user want?'},
    ]
    return self.complete(messages, model=self.intent_model, temperature=0.4, max_tokens=500).strip()

  def generate_site(self, intent: str) -> str:
    messages = [
      {"role": "system", "content": SITE_SYSTEM_PROMPT},
      {"role": "user", "content": f"Intent: {intent}\n\nGenerate the full code as files ({', '.join(SITE_FILES)}). "
                                  "Follow the output format exactly."},
    ]
    return self.complete(messages, model=self.code_model, temperature=0.4, max_tokens=3000)
