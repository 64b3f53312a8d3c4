from dataclasses import dataclass
from typing import List, Optional

from google.genai import types

from app.core.config import GEMINI_MODEL, RESPONSE_LANGUAGE
from app.core.exceptions import InvalidInput
from app.services.image_service import ImageInput

SYSTEM_INSTRUCTION = """You are Veritas, an elite fact-checking and image forensics analyst.
Your mission is to rigorously verify claims and images using live Google Search.

ANALYSIS PROTOCOL:
1. Research & verification: search the web for recent, authoritative sources.
2. Links: if the input contains a link (TikTok, YouTube, X...), do not stop at the URL.
   - Extract the username or channel from the URL (e.g. "@creator" in tiktok.com/@creator/...).
   - Look up that creator's reputation: known for hoaxes, VFX, satire or AI content?
   - Use that reputation to reach a probable verdict when the specific video cannot be found.
3. Images: describe what you see and look for AI-generation or editing artifacts.
   Take any embedded metadata supplied with the image into account.

STRICT RESPONSE FORMAT:
Line 1: only the verdict, in capitals, one of: TRUE, FALSE, MISLEADING, NUANCED, AI_GENERATED, MANIPULATED, UNVERIFIED.
Line 2: CONFIDENCE: <integer from 0 to 100>
Line 3: a short, punchy one-sentence summary (max 200 characters).
Line 4: empty.
Line 5 onwards: your detailed, structured analysis.
- For a video link, analyse the creator's profile instead of saying you cannot watch the video.
Then end with the section:
SOURCES_DETAILS:
- <url> : <source title> | <one-line summary of what this source establishes>
(one line per source you relied on)

RULES:
- Never put markdown on line 1 or line 2.
- Keep the verdict keyword, the CONFIDENCE marker and SOURCES_DETAILS in English.
- Write the summary and the analysis in {language}."""

TEXT_PROMPT = 'ANALYZE THIS CLAIM:\n"{claim}"'
IMAGE_PROMPT = "FORENSIC IMAGE ANALYSIS:"


@dataclass
class ReasoningRequest:
    """Everything needed for one generate_content round trip."""
    model: str
    contents: List[types.Content]
    config: types.GenerateContentConfig


class RequestComposer:
    """Builds the outbound payload for the reasoning service. Performs no I/O."""

    def __init__(
        self,
        model: str = GEMINI_MODEL,
        language: str = RESPONSE_LANGUAGE,
        temperature: float = 0.1,
        top_p: float = 0.95,
        top_k: int = 40,
        max_output_tokens: int = 2048,
    ):
        self.model = model
        self.language = language
        self.temperature = temperature
        self.top_p = top_p
        self.top_k = top_k
        self.max_output_tokens = max_output_tokens

    @property
    def system_instruction(self) -> str:
        return SYSTEM_INSTRUCTION.format(language=self.language)

    def compose(
        self,
        claim: str,
        image: Optional[ImageInput] = None,
        image_context: Optional[str] = None,
    ) -> ReasoningRequest:
        """
        Build the request for a claim and/or image.

        Args:
            claim (str): Claim text, may be empty when an image is supplied
            image (ImageInput): Optional image to inline
            image_context (str): Optional embedded metadata extracted from the image

        Returns:
            ReasoningRequest: model, contents and generation config

        Raises:
            InvalidInput: If neither a claim nor an image is supplied
        """
        claim = (claim or "").strip()
        has_image = image is not None and bool(image.data)
        if not claim and not has_image:
            raise InvalidInput("claim", "a claim or an image is required")

        parts = []
        if has_image:
            parts.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))
            prompt = [IMAGE_PROMPT]
            if claim:
                prompt.append(f'Context: "{claim}"')
            if image_context and image_context.strip():
                prompt.append(f"Embedded image metadata:\n{image_context.strip()}")
            parts.append(types.Part.from_text(text="\n".join(prompt)))
        else:
            parts.append(types.Part.from_text(text=TEXT_PROMPT.format(claim=claim)))

        config = types.GenerateContentConfig(
            system_instruction=self.system_instruction,
            tools=[types.Tool(google_search=types.GoogleSearch())],
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            max_output_tokens=self.max_output_tokens,
        )

        return ReasoningRequest(
            model=self.model,
            contents=[types.Content(role="user", parts=parts)],
            config=config,
        )
