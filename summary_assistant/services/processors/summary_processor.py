import logging
import re
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from summary_assistant.utils.llm_config import GenerativeTextClient

logger = logging.getLogger(__name__)

SUMMARY_LENGTHS = {
    "short": "2-3 sentences",
    "medium": "1 paragraph (4-6 sentences)",
    "long": "2-3 paragraphs",
}
SUMMARY_PROMPT = "Summarize the following text in {description}. Focus on the main ideas and key information:\n\n{text}"
KEY_POINTS_PROMPT = "Extract 5-7 key points from the following text. Return them as a numbered list:\n\n{text}"
KEY_POINTS = "key_points"

ORDINAL_MARKER = re.compile(r"^\d+\.(\s+|$)")
BULLET_MARKER = re.compile(r"^[-*](\s+|$)")
MAX_CONCURRENCY = 4  # There are only four requests


@dataclass
class SummaryResult:
    short: str
    medium: str
    long: str
    key_points: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "short": self.short,
            "medium": self.medium,
            "long": self.long,
            "keyPoints": list(self.key_points),
        }


def clean_key_points(raw: str) -> list[str]:
    """
    Turn a raw list response into plain key-point strings.

    Blank lines are dropped, a leading "1. " ordinal or "- "/"* " bullet is
    removed, and whatever is left is trimmed.
    """
    points = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        line = ORDINAL_MARKER.sub("", line)
        line = BULLET_MARKER.sub("", line).strip()
        if line:
            points.append(line)
    return points


class SummaryGenerator:
    """Short, medium and long summaries plus key points for a piece of text."""

    def __init__(self, client: GenerativeTextClient, concurrency: int = 1):
        self.client = client
        self.concurrency = max(1, min(concurrency, MAX_CONCURRENCY))

    def build_prompts(self, text: str) -> dict[str, str]:
        prompts = {
            length: SUMMARY_PROMPT.format(description=description, text=text)
            for length, description in SUMMARY_LENGTHS.items()
        }
        prompts[KEY_POINTS] = KEY_POINTS_PROMPT.format(text=text)
        return prompts

    def _run_sequential(self, prompts: dict[str, str]) -> dict[str, str]:
        responses = {}
        for name, prompt in prompts.items():
            logger.info(f"Requesting {name} from generative service")
            responses[name] = self.client.generate(prompt)
        return responses

    def _run_concurrent(self, prompts: dict[str, str]) -> dict[str, str]:
        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            futures = {name: executor.submit(self.client.generate, prompt) for name, prompt in prompts.items()}
            done, pending = wait(futures.values(), return_when=FIRST_EXCEPTION)
            failed = next((future for future in done if future.exception() is not None), None)
            if failed is not None:
                for future in pending:
                    future.cancel()
                raise failed.exception()
            return {name: future.result() for name, future in futures.items()}

    def generate(self, text: str) -> SummaryResult:
        """
        Raises:
            SummaryServiceError: if any of the four requests fails
        """
        prompts = self.build_prompts(text)
        if self.concurrency > 1:
            logger.info(f"Generating summaries with up to {self.concurrency} concurrent requests")
            responses = self._run_concurrent(prompts)
        else:
            responses = self._run_sequential(prompts)

        key_points = clean_key_points(responses[KEY_POINTS])
        logger.info(f"Summaries generated ({len(key_points)} key points)")
        return SummaryResult(
            short=responses["short"],
            medium=responses["medium"],
            long=responses["long"],
            key_points=key_points,
        )
