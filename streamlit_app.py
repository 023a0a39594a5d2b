"""Main Streamlit UI for the GAS Script Assistant.

The four screens mirror the controller's states:
category selection -> feature selection -> generate -> error fix.
All state lives on the per-browser-session controller; this module only
renders it and forwards button presses.
"""

from __future__ import annotations

import html
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

import streamlit as st
import streamlit.components.v1 as components
from dotenv import load_dotenv

# Ensure backend package is importable when running `streamlit run streamlit_app.py`.
ROOT = Path(__file__).resolve().parent
BACKEND_ROOT = ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))
load_dotenv(ROOT / ".env", override=False)

SECRET_ENV_KEYS = (
    "GEMINI_API_KEY",
    "GAS_ASSISTANT_MODEL",
    "GAS_ASSISTANT_BASE_URL",
    "GAS_ASSISTANT_LANGUAGE",
    "GAS_ASSISTANT_HOME",
    "GAS_ASSISTANT_PERSIST_CREDENTIAL",
    "GAS_ASSISTANT_LOG_LEVEL",
)


def _hydrate_env_from_streamlit_secrets() -> None:
    """Load assistant config from Streamlit Secrets into env when not already set."""
    try:
        secrets = st.secrets.to_dict()
    except Exception:  # no secrets.toml configured
        return

    gemini_block = secrets.get("gemini")
    if isinstance(gemini_block, dict):
        mapping = {
            "api_key": "GEMINI_API_KEY",
            "model": "GAS_ASSISTANT_MODEL",
            "base_url": "GAS_ASSISTANT_BASE_URL",
        }
        for secret_key, env_key in mapping.items():
            value = gemini_block.get(secret_key)
            if isinstance(value, str) and value.strip() and not os.getenv(env_key):
                os.environ[env_key] = value.strip()

    for key in SECRET_ENV_KEYS:
        value = secrets.get(key)
        if isinstance(value, str) and value.strip() and not os.getenv(key):
            os.environ[key] = value.strip()


_hydrate_env_from_streamlit_secrets()

from gas_script_assistant.app import create_app, new_session  # noqa: E402
from gas_script_assistant.catalog import Category  # noqa: E402
from gas_script_assistant.controller import COPY_FEEDBACK_SECONDS, View, ViewController  # noqa: E402
from gas_script_assistant.credentials import is_valid_credential  # noqa: E402
from gas_script_assistant.errors import InvalidCredentialError  # noqa: E402
from gas_script_assistant.history import HistoryEntry  # noqa: E402

logger = logging.getLogger("gas_script_assistant.ui")

CONTROLLER_KEY = "gsa_controller"
REQUIREMENT_KEY = "gsa_requirement"
CREDENTIAL_INPUT_KEY = "gsa_credential_input"
FIX_NONCE_KEY = "gsa_fix_nonce"
IMAGE_TYPES = ["png", "jpg", "jpeg", "gif", "webp"]


@st.cache_resource
def _get_app() -> Dict[str, Any]:
    app = create_app()
    logging.basicConfig(
        level=app["settings"].log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return app


def _rerun() -> None:
    st.rerun()


def _init_state() -> ViewController:
    if CONTROLLER_KEY not in st.session_state:
        st.session_state[CONTROLLER_KEY] = new_session(_get_app())
        logger.info("Started a new assistant session")
    st.session_state.setdefault(REQUIREMENT_KEY, "")
    st.session_state.setdefault(CREDENTIAL_INPUT_KEY, "")
    st.session_state.setdefault(FIX_NONCE_KEY, 0)
    return st.session_state[CONTROLLER_KEY]


def _inject_styles() -> None:
    st.markdown(
        """
        <style>
        .gsa-subtitle { color: #5f6b7a; margin-top: -0.6rem; margin-bottom: 1.2rem; }
        .gsa-card { border: 1px solid #e3e8ef; border-radius: 10px; padding: 0.9rem 1rem; margin-bottom: 0.6rem; }
        .gsa-card h5 { margin: 0 0 0.3rem 0; }
        .gsa-card p { margin: 0; color: #5f6b7a; font-size: 0.9rem; }
        .gsa-history-item { border-left: 3px solid #4c8bf5; padding-left: 0.6rem; margin-bottom: 0.4rem; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def _sync_requirement_widget(controller: ViewController) -> None:
    st.session_state[REQUIREMENT_KEY] = controller.session.requirement


def _reset_fix_widgets() -> None:
    st.session_state[FIX_NONCE_KEY] = int(st.session_state[FIX_NONCE_KEY]) + 1


def _copy_to_clipboard(text: str) -> None:
    """Copy in the browser and report the real outcome, cleared after the feedback window."""
    payload = json.dumps(text).replace("</", "<\\/")
    components.html(
        f"""
        <div id="status" style="font: 0.85rem sans-serif; color: #5f6b7a;"></div>
        <script>
        const el = document.getElementById("status");
        navigator.clipboard.writeText({payload})
          .then(() => {{ el.textContent = "Copied!"; }})
          .catch(() => {{ el.textContent = "Copy failed. Select the text and copy it manually."; }})
          .finally(() => setTimeout(() => {{ el.textContent = ""; }}, {int(COPY_FEEDBACK_SECONDS * 1000)}));
        </script>
        """,
        height=28,
    )


def _show_error(error: Exception | None) -> None:
    if error is None:
        return
    if isinstance(error, InvalidCredentialError):
        st.error(f"{error} Go back to the first screen and re-enter your API key.")
    else:
        st.error(str(error))


def _header(controller: ViewController) -> None:
    st.title(controller.page_title)
    st.markdown(
        f"<p class='gsa-subtitle'>{html.escape(controller.page_subtitle)}</p>",
        unsafe_allow_html=True,
    )


def _back_button(controller: ViewController) -> None:
    if st.button("Back", key=f"back_{controller.view.value}", disabled=controller.session.busy):
        controller.back()
        _sync_requirement_widget(controller)
        _reset_fix_widgets()
        _rerun()


def _credential_section(controller: ViewController) -> None:
    st.subheader("Gemini API settings")
    gate = controller.session.credential
    if gate.is_valid:
        st.success("API key is set for this session.")

    st.text_input(
        "Gemini API key",
        key=CREDENTIAL_INPUT_KEY,
        type="password",
        placeholder="A 39-character key starting with AIza...",
    )
    raw = st.session_state[CREDENTIAL_INPUT_KEY]
    if raw:
        if is_valid_credential(raw):
            st.caption("Key format looks valid.")
        else:
            st.caption("Key format is not valid.")

    cols = st.columns(2)
    if cols[0].button("Use this key", type="primary", use_container_width=True):
        controller.submit_credential(raw)
        _rerun()
    if cols[1].button("Forget stored key", use_container_width=True, disabled=not gate.is_valid):
        controller.forget_credential()
        _rerun()
    st.caption("The key is only sent to Gemini with your generation requests.")


def _category_screen(controller: ViewController) -> None:
    _credential_section(controller)
    _show_error(controller.session.error)

    st.subheader("Script type")
    cols = st.columns(len(Category))
    for col, category in zip(cols, Category):
        col.markdown(
            f"<div class='gsa-card'><h5>{html.escape(category.label)}</h5>"
            f"<p>{html.escape(category.description)}</p></div>",
            unsafe_allow_html=True,
        )
        if col.button(f"Choose {category.label}", key=f"category_{category.value}", use_container_width=True):
            controller.select_category(category)
            _rerun()


def _feature_screen(controller: ViewController) -> None:
    _back_button(controller)
    _header(controller)
    _show_error(controller.session.error)

    features = controller.available_features
    cols = st.columns(2)
    for index, feature in enumerate(features):
        col = cols[index % 2]
        col.markdown(
            f"<div class='gsa-card'><h5>{html.escape(feature.label)}</h5>"
            f"<p>{html.escape(feature.description)}</p></div>",
            unsafe_allow_html=True,
        )
        if col.button(f"Use \"{feature.label}\"", key=f"feature_{feature.id}", use_container_width=True):
            controller.select_feature(feature)
            _sync_requirement_widget(controller)
            _rerun()

    st.markdown("---")
    if st.button("Or describe your own requirements", use_container_width=True):
        controller.custom_prompt()
        _sync_requirement_widget(controller)
        _rerun()


def _script_output(controller: ViewController, allow_fix_entry: bool) -> None:
    session = controller.session
    st.code(session.script, language="javascript")

    cols = st.columns(3)
    if cols[0].button("Copy script", key="copy_script", use_container_width=True):
        _copy_to_clipboard(session.script)
        controller.mark_copied("script")
    if cols[1].button("Explain this script", key="explain", use_container_width=True, disabled=session.busy):
        with st.spinner("Writing the operating manual..."):
            controller.explain()
    if allow_fix_entry:
        if cols[2].button("Fix an error", key="enter_fix", use_container_width=True):
            if controller.enter_error_fix():
                _reset_fix_widgets()
            _rerun()
    elif cols[2].button("Fix further", key="continue_fix", use_container_width=True):
        controller.continue_fixing()
        _reset_fix_widgets()
        _rerun()

    _show_error(session.explanation_error)
    if session.explanation:
        st.markdown("#### Operating manual")
        st.markdown(session.explanation)
        if st.button("Copy manual", key="copy_explanation"):
            _copy_to_clipboard(session.explanation)
            controller.mark_copied("explanation")


def _generate_screen(controller: ViewController) -> None:
    session = controller.session
    _back_button(controller)
    _header(controller)

    left, right = st.columns(2)
    with left:
        label = (
            f"Details for \"{session.feature.label}\":" if session.feature else "What should the script do?"
        )
        st.text_area(label, key=REQUIREMENT_KEY, height=220, disabled=session.busy)
        submitted = st.button(
            "Generate script",
            type="primary",
            use_container_width=True,
            disabled=session.busy or not st.session_state[REQUIREMENT_KEY].strip(),
        )
        if submitted:
            controller.set_requirement(st.session_state[REQUIREMENT_KEY])
            with st.spinner("Generating script..."):
                controller.generate()
        _show_error(session.error)

    with right:
        st.subheader("Result")
        if session.script:
            _script_output(controller, allow_fix_entry=True)
        else:
            st.info("Describe your requirements and press \"Generate script\".")


def _history_panel(entries: tuple[HistoryEntry, ...]) -> None:
    if not entries:
        return
    st.markdown("#### Context history")
    for index, entry in enumerate(entries, start=1):
        st.markdown(
            f"<div class='gsa-history-item'>{index}. {html.escape(entry.kind_label)} - "
            f"{html.escape(entry.time_label)}</div>",
            unsafe_allow_html=True,
        )
        with st.expander(f"Round {index} details"):
            st.markdown(f"**Request:** {entry.prompt}")
            if entry.error_description:
                st.markdown(f"**Error:** {entry.error_description}")
            if entry.error_image:
                st.caption("A screenshot was attached to this round.")
            st.code(entry.script, language="javascript")


def _error_fix_screen(controller: ViewController) -> None:
    session = controller.session
    nonce = st.session_state[FIX_NONCE_KEY]
    _back_button(controller)
    _header(controller)

    left, right = st.columns(2)
    with left:
        st.subheader("Error details")
        description = st.text_area(
            "What went wrong?",
            key=f"gsa_error_description_{nonce}",
            height=160,
            placeholder="e.g. Running it fails with \"ReferenceError: SpreadsheetApp is not defined\".",
            disabled=session.busy,
        )
        upload = st.file_uploader(
            "Error screenshot (optional, 5 MB max)",
            type=IMAGE_TYPES,
            key=f"gsa_error_image_{nonce}",
            disabled=session.busy,
        )
        if upload is not None:
            if controller.attach_image(upload.name, upload.getvalue(), upload.type):
                st.caption(f"{upload.name} attached.")
        else:
            controller.clear_image()

        if st.button(
            "Fix the script",
            type="primary",
            use_container_width=True,
            disabled=session.busy or not description.strip(),
        ):
            controller.set_error_description(description)
            with st.spinner("Fixing the script..."):
                fixed = controller.fix_error()
            if fixed:
                _reset_fix_widgets()
                _rerun()

        _history_panel(session.ledger.all())

    with right:
        st.subheader("Fix result")
        _show_error(session.error)
        if session.script:
            _script_output(controller, allow_fix_entry=False)
        else:
            st.info("Describe the error and press \"Fix the script\".")


def main() -> None:
    st.set_page_config(
        page_title="GAS Script Assistant",
        page_icon="🛠️",
        layout="wide",
    )

    controller = _init_state()
    _inject_styles()

    if controller.view is View.CATEGORY_SELECTION:
        _header(controller)
        _category_screen(controller)
    elif controller.view is View.FEATURE_SELECTION:
        _feature_screen(controller)
    elif controller.view is View.GENERATE:
        _generate_screen(controller)
    else:
        _error_fix_screen(controller)

    st.caption("Powered by the Gemini API.")


if __name__ == "__main__":
    main()
