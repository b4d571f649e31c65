"""Prompts for AI-assisted authentication component detection."""

DETECTION_SYSTEM_PROMPT = """You are an expert at detecting authentication components on websites.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON object."""

_SCREENSHOT_NOTE = (
    "VISUAL: A screenshot of the rendered page is attached. Use it for layout "
    "context and make sure every visible authentication component is reported.\n"
)


def build_detection_prompt(url: str, html: str, has_screenshot: bool) -> str:
    """Build the user message for the detection call."""
    visual = _SCREENSHOT_NOTE if has_screenshot else ""
    return f"""URL: {url}

TASK: Find ALL authentication methods on this page. For each, give a Playwright selector that locates it.

TYPES:
1. traditional - Login forms with email/username and password fields, or "Sign in"/"Log in" buttons and links
2. oauth - Social or SSO login (Google, Apple, Facebook, GitHub, Microsoft, ...). Must name the provider
3. passwordless - Magic links, one-time codes (OTP), passkeys, WebAuthn

SELECTOR TIPS:
- Use visible text: button:has-text("Continue with Google")
- Use attributes: [data-provider="google"]
- For containers: div:has(button:has-text("Google"))
- The selector is evaluated later against the live page, so it must match real markup

{visual}OUTPUT FORMAT (JSON only):
{{
  "found": true,
  "components": [
    {{"type": "traditional", "details": {{"fields": ["email", "password"], "selector": "form:has(input[type='password'])"}}}},
    {{"type": "oauth", "details": {{"providers": ["google"], "selector": "button:has-text('Sign in with Google')"}}}},
    {{"type": "passwordless", "details": {{"method": "passkey", "selector": "button:has-text('Sign in with a passkey')"}}}}
  ]
}}

If there is no authentication component, return {{"found": false, "components": []}}.

HTML:
{html}

Return ONLY valid JSON:"""
