"""Coaching insights for completed sessions (OpenAI, Gemini, heuristic)."""

import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

import google.generativeai as genai
from openai import OpenAI

import config
from tracking.session import FocusSession

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a concise focus coach. Provide a 2-3 sentence actionable insight. "
    "Be direct and positive, suggest 1 simple change."
)

SOURCE_OPENAI = "openai"
SOURCE_GEMINI = "gemini"
SOURCE_HEURISTIC = "heuristic"


def baseline_focus(recent_sessions: Iterable[FocusSession], limit: Optional[int] = None) -> int:
    """
    Average focus of the most recent sessions.
    
    Args:
        recent_sessions: The user's sessions, in any order
        limit: Number of sessions to average (defaults to config.BASELINE_SESSION_COUNT)
    
    Returns:
        Rounded average, 0 if there are no sessions
    """
    limit = limit or config.BASELINE_SESSION_COUNT
    latest = sorted(recent_sessions, key=lambda s: s.start_time, reverse=True)[:limit]
    if not latest:
        return 0
    return int(round(sum(s.focus_percentage for s in latest) / len(latest)))


def summarise_session(session: FocusSession, baseline: int) -> Dict[str, Any]:
    return {
        "duration_min": int(round(session.duration / 60)),
        "focus_pct": session.focus_percentage,
        "distractions": session.distraction_count,
        "task": session.goal or "",
        "baseline_focus": baseline,
    }


def heuristic_insight(summary: Dict[str, Any]) -> str:
    """
    Deterministic insight used when no provider is available.
    
    Args:
        summary: Output of summarise_session()
    
    Returns:
        One or two sentence insight
    """
    focus = summary["focus_pct"]
    baseline = summary["baseline_focus"]
    distractions = summary["distractions"]
    
    if focus < baseline - 10:
        return (
            f"Below your recent average ({focus:.2f}% vs {baseline}%). Try a shorter block "
            f"and remove a top distraction (phone away, tighter to-do for "
            f"{summary['task'] or 'this task'})."
        )
    if distractions >= 6:
        return (
            f"Good effort, but {distractions} distractions broke flow. Identify the main "
            f"trigger and remove it next block (notifications off, door closed)."
        )
    if focus >= baseline + 10:
        return (
            f"Great result ({focus:.2f}% vs {baseline}% baseline). Repeat the same time "
            f"and setup, you're onto a high-focus routine."
        )
    return (
        f"Solid focus. For the next block, make one small environmental upgrade "
        f"(better lighting or fewer background motions) to push above "
        f"{min(95, focus + 5):.0f}%."
    )


class SessionInsightGenerator:
    """
    Generates a short coaching insight for a completed session.
    
    Tries OpenAI first, then Gemini, then falls back to a heuristic that
    always succeeds. Providers without an API key are skipped.
    """
    
    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        openai_client: Optional[Any] = None,
        gemini_model: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize provider clients.
        
        Args:
            openai_api_key: OpenAI API key (defaults to config.OPENAI_API_KEY)
            gemini_api_key: Gemini API key (defaults to config.GEMINI_API_KEY)
            openai_client: Pre-built OpenAI client
            gemini_model: Pre-built Gemini GenerativeModel
            sleep: Sleep function used between OpenAI retries
        """
        self.openai_api_key = openai_api_key or config.OPENAI_API_KEY
        self.gemini_api_key = gemini_api_key or config.GEMINI_API_KEY
        self.model = config.OPENAI_MODEL
        self._sleep = sleep
        
        self.client = openai_client
        if self.client is None and self.openai_api_key:
            self.client = OpenAI(api_key=self.openai_api_key)
        
        self.gemini_model = gemini_model
        if self.gemini_model is None and self.gemini_api_key:
            genai.configure(api_key=self.gemini_api_key)
            self.gemini_model = genai.GenerativeModel(
                model_name=config.GEMINI_MODEL,
                system_instruction=SYSTEM_PROMPT,
                generation_config=genai.GenerationConfig(
                    temperature=0.5,
                    max_output_tokens=160,
                )
            )
        
        if not self.client and not self.gemini_model:
            logger.warning("No AI provider keys found. Insights will use the heuristic.")
    
    def generate_insight(
        self,
        session: FocusSession,
        recent_sessions: Iterable[FocusSession] = (),
        max_retries: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Generate an insight for a session.
        
        Args:
            session: Completed session
            recent_sessions: The user's recent sessions, for the baseline
            max_retries: OpenAI attempts (defaults to config.OPENAI_MAX_RETRIES)
        
        Returns:
            Dictionary with:
            - insight: The insight text
            - source: "openai", "gemini" or "heuristic"
            - success: Always True (the heuristic cannot fail)
        """
        summary = summarise_session(session, baseline_focus(recent_sessions))
        prompt = self._create_prompt(summary)
        
        if self.client:
            text = self._try_openai(prompt, max_retries or config.OPENAI_MAX_RETRIES)
            if text:
                return {"insight": text, "source": SOURCE_OPENAI, "success": True}
        
        if self.gemini_model:
            text = self._try_gemini(prompt)
            if text:
                return {"insight": text, "source": SOURCE_GEMINI, "success": True}
        
        logger.info("Falling back to heuristic insight")
        return {"insight": heuristic_insight(summary), "source": SOURCE_HEURISTIC, "success": True}
    
    def _create_prompt(self, summary: Dict[str, Any]) -> str:
        return f"""Session:
- Duration: {summary['duration_min']} min
- Focus score: {summary['focus_pct']:.1f}%
- Distractions: {summary['distractions']}
- Task: {summary['task'] or 'N/A'}
- Baseline focus (last {config.BASELINE_SESSION_COUNT} sessions): {summary['baseline_focus']}%
Guidelines: Be direct and positive, suggest 1 simple change."""
    
    def _try_openai(self, prompt: str, max_retries: int) -> Optional[str]:
        """Call OpenAI with exponential backoff. Returns None if every attempt fails."""
        for attempt in range(max_retries):
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=0.5,
                    max_tokens=160,
                )
                content = (response.choices[0].message.content or "").strip()
                if content:
                    logger.info("Successfully generated insight from OpenAI")
                    return content
                logger.warning("Empty response from OpenAI")
                return None
            
            except Exception as e:
                logger.warning(f"OpenAI API call attempt {attempt + 1} failed: {e}")
                
                if attempt < max_retries - 1:
                    wait_time = config.OPENAI_RETRY_DELAY * (2 ** attempt)
                    logger.info(f"Retrying in {wait_time} seconds...")
                    self._sleep(wait_time)
        
        logger.error("All OpenAI API attempts failed")
        return None
    
    def _try_gemini(self, prompt: str) -> Optional[str]:
        try:
            response = self.gemini_model.generate_content(prompt)
        except Exception as e:
            logger.warning(f"Gemini API call failed: {e}")
            return None
        
        try:
            content = (response.text or "").strip()
        except ValueError as e:
            # response.text raises ValueError if no valid candidates
            logger.warning(f"Gemini response has no valid text: {e}")
            return None
        
        if content:
            logger.info("Successfully generated insight from Gemini")
            return content
        return None
