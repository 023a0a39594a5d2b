"""Session state and the four-screen wizard driving it.

The controller is the only writer of ``Session``. Every failure raised by
the components below it is caught here and parked on the session for the UI
to display; nothing propagates further.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from .attachments import ImageAttachment
from .catalog import Category, FeatureTemplate, feature_by_id, features_for
from .credentials import CredentialGate
from .errors import AssistantError, AuthError, ValidationError
from .history import ERROR_FIX, INITIAL, HistoryLedger
from .prompts import DEFAULT_LANGUAGE, build_error_fix_request, build_generation_request

logger = logging.getLogger(__name__)

COPY_FEEDBACK_SECONDS = 2.0


class View(str, Enum):
    CATEGORY_SELECTION = "category_selection"
    FEATURE_SELECTION = "feature_selection"
    GENERATE = "generate"
    ERROR_FIX = "error_fix"


PREVIOUS_VIEW = {
    View.FEATURE_SELECTION: View.CATEGORY_SELECTION,
    View.GENERATE: View.FEATURE_SELECTION,
    View.ERROR_FIX: View.GENERATE,
}


class ScriptGenerator(Protocol):
    def generate(self, request_text: str, category: Category, credential: str) -> str: ...

    def fix(self, request_text: str, category: Category, credential: str) -> str: ...

    def explain(self, script_text: str, category: Category, credential: str) -> str: ...


@dataclass
class PendingErrorReport:
    description: str = ""
    image: Optional[ImageAttachment] = None

    def clear(self) -> None:
        self.description = ""
        self.image = None


@dataclass
class Session:
    credential: CredentialGate
    ledger: HistoryLedger
    view: View = View.CATEGORY_SELECTION
    category: Optional[Category] = None
    feature: Optional[FeatureTemplate] = None
    requirement: str = ""
    script: str = ""
    explanation: str = ""
    error: Optional[AssistantError] = None
    explanation_error: Optional[AssistantError] = None
    pending: PendingErrorReport = field(default_factory=PendingErrorReport)
    busy: bool = False
    copied_at: Dict[str, float] = field(default_factory=dict)

    def clear_outputs(self) -> None:
        self.script = ""
        self.explanation = ""
        self.error = None
        self.explanation_error = None
        self.copied_at.clear()


class ViewController:
    def __init__(
        self,
        session: Session,
        client: ScriptGenerator,
        language: str = DEFAULT_LANGUAGE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.client = client
        self.language = language
        self._clock = clock

    @property
    def view(self) -> View:
        return self.session.view

    @contextmanager
    def _surface(self, slot: str = "error") -> Iterator[None]:
        """Park any assistant failure on ``session.<slot>`` instead of raising."""
        try:
            yield
        except AssistantError as exc:
            setattr(self.session, slot, exc)

    @contextmanager
    def _in_flight(self) -> Iterator[None]:
        if self.session.busy:
            raise ValidationError("A request is already in progress. Please wait for it to finish.")
        self.session.busy = True
        try:
            yield
        finally:
            self.session.busy = False

    def _require_category(self) -> Category:
        if self.session.category is None:
            raise ValidationError("No script type is selected. Go back to the first screen and choose one.")
        return self.session.category

    def _require_view(self, view: View) -> None:
        if self.session.view is not view:
            raise ValidationError("That action is not available on this screen.")

    # -- credential -------------------------------------------------------

    def submit_credential(self, raw: str) -> bool:
        accepted = self.session.credential.set_credential(raw)
        if accepted:
            if isinstance(self.session.error, AuthError):
                self.session.error = None
        else:
            self.session.error = AuthError(
                "Enter a valid Gemini API key. Keys start with \"AIza\" and are 39 characters long."
            )
        return accepted

    def forget_credential(self) -> None:
        self.session.credential.clear()

    # -- navigation -------------------------------------------------------

    def select_category(self, category: Category | str) -> bool:
        with self._surface():
            self._require_view(View.CATEGORY_SELECTION)
            if not self.session.credential.is_valid:
                raise AuthError("Enter your Gemini API key first.")
            try:
                self.session.category = Category(category)
            except ValueError as exc:
                raise ValidationError(f"Unknown script type: {category!r}") from exc
            self.session.view = View.FEATURE_SELECTION
            self.session.clear_outputs()
            return True
        return False

    def select_feature(self, feature: FeatureTemplate | str) -> bool:
        with self._surface():
            self._require_view(View.FEATURE_SELECTION)
            category = self._require_category()
            try:
                template = feature_by_id(feature) if isinstance(feature, str) else feature
            except KeyError as exc:
                raise ValidationError(f"Unknown feature: {feature!r}") from exc
            if not template.supports(category):
                raise ValidationError(f"\"{template.label}\" is not available for {category.label}.")
            self.session.feature = template
            self.session.requirement = template.prompt_example
            self.session.view = View.GENERATE
            self.session.clear_outputs()
            return True
        return False

    def custom_prompt(self) -> bool:
        with self._surface():
            self._require_view(View.FEATURE_SELECTION)
            self._require_category()
            self.session.feature = None
            self.session.requirement = ""
            self.session.view = View.GENERATE
            self.session.clear_outputs()
            return True
        return False

    def enter_error_fix(self) -> bool:
        with self._surface():
            self._require_view(View.GENERATE)
            if not self.session.script:
                raise ValidationError("There is no script to fix. Generate a script first.")
            self.session.pending.clear()
            self.session.error = None
            self.session.view = View.ERROR_FIX
            return True
        return False

    def back(self) -> View:
        """Step back one screen, dropping transient output but never history."""
        session = self.session
        previous = PREVIOUS_VIEW.get(session.view)
        if previous is None:
            return session.view
        if session.view is View.ERROR_FIX:
            session.pending.clear()
        elif session.view is View.GENERATE:
            session.feature = None
        elif session.view is View.FEATURE_SELECTION:
            session.category = None
        session.view = previous
        session.clear_outputs()
        session.requirement = ""
        return previous

    # -- inputs -----------------------------------------------------------

    def set_requirement(self, text: str) -> None:
        self.session.requirement = text or ""

    def set_error_description(self, text: str) -> None:
        self.session.pending.description = text or ""

    def attach_image(self, name: str, data: bytes, mime_type: str | None = None) -> bool:
        with self._surface():
            self.session.pending.image = ImageAttachment.from_upload(name, data, mime_type)
            return True
        return False

    def clear_image(self) -> None:
        self.session.pending.image = None

    def continue_fixing(self) -> None:
        """Start another fix round on top of the current script."""
        self.session.pending.clear()
        self.session.error = None

    # -- model calls ------------------------------------------------------

    def generate(self) -> bool:
        session = self.session
        with self._surface():
            self._require_view(View.GENERATE)
            requirement = session.requirement
            if not requirement.strip():
                raise ValidationError("Describe the script you want to create.")
            category = self._require_category()
            credential = session.credential.require()
            request = build_generation_request(requirement, category, session.feature, self.language)
            session.error = None
            with self._in_flight():
                script = self.client.generate(request.text, category, credential)
            session.clear_outputs()
            session.script = script
            session.ledger.reset()
            session.ledger.record(INITIAL, requirement, script)
            logger.info("Generated %s script (%d chars)", category.value, len(script))
            return True
        return False

    def explain(self) -> bool:
        session = self.session
        with self._surface("explanation_error"):
            if not session.script:
                raise ValidationError("There is no script to explain yet.")
            category = self._require_category()
            credential = session.credential.require()
            session.explanation_error = None
            with self._in_flight():
                explanation = self.client.explain(session.script, category, credential)
            session.explanation = explanation
            session.copied_at.pop("explanation", None)
            return True
        return False

    def fix_error(self) -> bool:
        session = self.session
        with self._surface():
            self._require_view(View.ERROR_FIX)
            description = session.pending.description.strip()
            if not description:
                raise ValidationError("Describe the error you ran into.")
            category = self._require_category()
            credential = session.credential.require()
            image_uri = session.pending.image.to_data_uri() if session.pending.image else None
            request = build_error_fix_request(
                session.ledger.all(),
                description,
                category,
                image_data_uri=image_uri,
                language=self.language,
            )
            session.error = None
            with self._in_flight():
                fixed = self.client.fix(request.text, category, credential)
            session.clear_outputs()
            session.script = fixed
            session.ledger.record(
                ERROR_FIX,
                description,
                fixed,
                error_description=description,
                error_image=image_uri,
            )
            session.pending.clear()
            logger.info("Fix round %d produced %d chars", len(session.ledger), len(fixed))
            return True
        return False

    # -- clipboard feedback -----------------------------------------------

    def mark_copied(self, target: str) -> None:
        self.session.copied_at[target] = self._clock()

    def is_copied(self, target: str) -> bool:
        stamp = self.session.copied_at.get(target)
        return stamp is not None and self._clock() - stamp < COPY_FEEDBACK_SECONDS

    # -- read-only view data ----------------------------------------------

    @property
    def available_features(self) -> List[FeatureTemplate]:
        if self.session.category is None:
            return []
        return features_for(self.session.category)

    @property
    def page_title(self) -> str:
        session = self.session
        if session.view is View.GENERATE:
            return session.feature.label if session.feature else "Generate from custom requirements"
        if session.view is View.FEATURE_SELECTION:
            return f"Choose a {session.category.label} feature" if session.category else "Choose a feature"
        if session.view is View.ERROR_FIX:
            return "Error fix mode"
        return "GAS Script Assistant"

    @property
    def page_subtitle(self) -> str:
        session = self.session
        label = session.category.label if session.category else ""
        if session.view is View.GENERATE:
            if session.feature:
                return f"Generate a \"{session.feature.label}\" {label}. Describe your requirements."
            return f"Generate a {label} from your own requirements. Describe them below."
        if session.view is View.FEATURE_SELECTION:
            return f"Pick a common {label} feature, or describe your own requirements."
        if session.view is View.ERROR_FIX:
            return "Describe the error and optionally attach a screenshot; every previous round is sent as context."
        return "First, choose the type of Google Apps Script you want to create."
