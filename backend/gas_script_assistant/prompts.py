"""Prompt construction for generation, explanation and error fixing.

Every builder is a pure function of its inputs and returns a ``PromptRequest``
pairing the user-turn text with the system instruction it must be sent with.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .catalog import Category, FeatureTemplate
from .history import HistoryEntry

DEFAULT_LANGUAGE = "Japanese"

_FENCE_RE = re.compile(r"^```(?:\w*\s*\n)?(.*?)\n?\s*```\s*$", re.DOTALL)


@dataclass(frozen=True)
class PromptRequest:
    text: str
    system_instruction: str


def strip_code_fence(raw: str | None) -> str:
    """Unwrap a response fenced in a single markdown code block.

    Anything that is not a single fenced block is returned trimmed but
    otherwise untouched.
    """
    text = (raw or "").strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def _generation_base(language: str) -> str:
    return f"""You are an AI assistant that specializes in generating Google Apps Script (GAS) code.
Based on the user's natural language description, provide only the raw Google Apps Script code.
Ensure the generated Google Apps Script code is compatible with the V8 runtime.
Menu names, item names, toast messages, prompts, and console logs should be in {language} unless otherwise specified by the user's prompt.
Do not include any markdown formatting like ```javascript ... ``` or ```gas ... ``` around the code.
Do not add any explanations, introductory phrases (e.g., "Here is the script:"), or concluding remarks.
Only output the Google Apps Script code itself.
Ensure the generated code is syntactically correct and adheres to common GAS practices. Use 'function myFunction() {{}}' not 'const myFunction = () => {{}}' for top-level functions unless it's a web app using doGet/doPost or another context that requires arrow functions.
If the user's request is ambiguous or lacks details needed for a functional script, generate a sensible script that fulfills the core request, with placeholder comments in {language} where more specific information is needed (e.g. a TODO asking to replace the sheet ID).
"""


def _spreadsheet_mandate(language: str) -> str:
    return f"""
**Script Type: Spreadsheet-bound (container-bound)**
The script MUST be designed to be run from a Google Spreadsheet.
ALWAYS include an onOpen() function that creates a custom menu in the spreadsheet UI. This menu should provide a way to trigger the main functionality of the script and to configure settings.
The main logic requested by the user should be in a separate function, called from the custom menu item created in onOpen().
Menu names, item names, and toast messages should be in {language}.

Example onOpen() structure:
function onOpen() {{
  const ui = SpreadsheetApp.getUi();
  const menu = ui.createMenu('Custom menu'); // menu name in {language}
  menu.addItem('Run main task', 'mainFunction'); // item name in {language}
  // Add items for setting properties here, e.g. menu.addItem('Set API key', 'setApiKey');
  menu.addToUi();
}}

function mainFunction() {{
  // ... user's requested logic here ...
  SpreadsheetApp.getActiveSpreadsheet().toast('Script finished.'); // toast in {language}
}}

**Script Properties for Configuration & Secrets (Spreadsheet-bound):**
If the script requires sensitive data (API keys, webhook URLs) or configurable parameters (sheet names, email addresses):
1.  **Store in Script Properties:** Use Script Properties (`PropertiesService.getScriptProperties()`).
2.  **Menu Items for Setting Properties:** In `onOpen()`, add menu items (e.g. 'Set API key') that let users set these properties via UI prompts (`SpreadsheetApp.getUi().prompt()`).
3.  **Setter Functions:** Create corresponding functions (e.g. `setApiKey()`) that use `SpreadsheetApp.getUi().prompt()` to get input (in {language}) and save it to Script Properties. Provide clear {language} toast messages for success, failure and cancellation.
4.  **Check for Properties:** In the main function(s), check that required properties are set. If one is missing, show a {language} toast guiding the user to set it via the menu and exit gracefully.
5.  **Use Descriptive Property Keys:** Use clear, uppercase, snake_case property keys (e.g. `DISCORD_WEBHOOK_URL`).
"""


def _form_mandate(language: str) -> str:
    return f"""
**Script Type: Google Form-bound (container-bound)**
The script MUST be designed to be embedded within a Google Form.
If the user's request implies reacting to form submissions, the primary function should be designed for an 'on form submit' trigger. Name this function clearly (e.g. `onFormSubmitResponse(e)`) and include a comment, in {language}, instructing the user to set up this trigger manually in the Apps Script editor.
Example for on form submit:
function onFormSubmitResponse(e) {{
  const formResponse = e.response;
  // Access item responses, e.g. formResponse.getItemResponses()[0].getResponse();
  // ... user's requested logic here ...
  console.log('Form submission processed.');
}}
/*
IMPORTANT: to run 'onFormSubmitResponse' when the form is submitted,
open Triggers (clock icon) in the script editor and add a new trigger:
  - Function to run: onFormSubmitResponse
  - Event source: From form
  - Event type: On form submit
Then save.
*/

An `onOpen()` function can be included to create a custom menu *for the form editor/owner*. This menu can handle setup tasks.
**Script Properties for Configuration & Secrets (Form-bound):**
If configuration (API keys, webhook URLs) is needed:
1.  Store it in Script Properties (`PropertiesService.getScriptProperties()`).
2.  Provide functions callable from a custom menu (via `onOpen`) for the form *editor* to set these properties using UI prompts.
3.  The main processing function (e.g. `onFormSubmitResponse`) should read these properties. If one is missing, log an error or notify the form owner that setup is needed. Messages for setting properties should be in {language}.
"""


def _standalone_mandate(language: str) -> str:
    return f"""
**Script Type: Standalone**
The script is NOT bound to any specific Google Workspace file.
Do NOT include an `onOpen()` function or custom menus unless the script is explicitly requested to be a Web App (using `doGet(e)` or `doPost(e)`).
If the script is a Web App:
  - Implement `doGet(e)` for GET requests and/or `doPost(e)` for POST requests.
  - HTML can be served using `HtmlService.createHtmlOutputFromFile('fileName').setTitle('Web app title');`.
**Script Properties for Configuration & Secrets (Standalone):**
If configuration (API keys, webhook URLs) is needed:
1.  Store it in Script Properties (`PropertiesService.getScriptProperties()`).
2.  Instruct the user, in {language} comments within the script, to set these properties manually in the Apps Script editor via "Project Settings" (gear icon) > "Script Properties", naming each property and the value it expects.
3.  The main functions should read these properties. If a required property is missing, throw an error or log a {language} message saying which configuration is needed and how to set it.
"""


_CATEGORY_MANDATES = {
    Category.SPREADSHEET: _spreadsheet_mandate,
    Category.FORM: _form_mandate,
    Category.STANDALONE: _standalone_mandate,
}


def category_mandate(category: Category, language: str = DEFAULT_LANGUAGE) -> str:
    """Structural rules a script of ``category`` must follow."""
    return _CATEGORY_MANDATES[Category(category)](language)


def generation_system_instruction(category: Category, language: str = DEFAULT_LANGUAGE) -> str:
    return _generation_base(language) + category_mandate(category, language)


def error_fix_system_instruction(category: Category, language: str = DEFAULT_LANGUAGE) -> str:
    base = f"""You are an AI assistant that specializes in debugging and fixing Google Apps Script (GAS) code.
You will be provided with:
1. The context of previous script generation attempts
2. A description of the error that occurred
3. Possibly a screenshot of the error

Your task is to analyze the error and generate a corrected version of the Google Apps Script code.
Ensure the generated Google Apps Script code is compatible with the V8 runtime.
Menu names, item names, toast messages, prompts, and console logs should be in {language} unless otherwise specified.
Do not include any markdown formatting like ```javascript ... ``` or ```gas ... ``` around the code.
Do not add any explanations, introductory phrases, or concluding remarks.
Only output the corrected Google Apps Script code itself.

Common error patterns to look for and fix:
- Incorrect API usage (e.g. deprecated methods)
- Missing error handling
- Scope and permission issues
- Syntax errors
- Incorrect function signatures
- Missing required parameters
- Asynchronous operation handling
- V8 runtime compatibility issues

Pay special attention to the error description and fix the specific issue mentioned while maintaining the original functionality.
"""
    return base + category_mandate(category, language)


def explanation_system_instruction(language: str = DEFAULT_LANGUAGE) -> str:
    return f"""You are an AI assistant that specializes in creating clear, beginner-friendly user manuals in {language} for Google Apps Scripts.
Given a Google Apps Script AND ITS TYPE (Standalone, Spreadsheet-bound, or Form-bound), generate a step-by-step guide.
The manual should cover:
1.  **Script type:** state the provided type (standalone, spreadsheet-bound or form-bound) at the top.
2.  **Purpose:** briefly explain what the script does.
3.  **Main features:** list the key features.
4.  **Setup:**
    *   How to open the script editor for this script type (from the spreadsheet/form, or a new project on drive.google.com).
    *   How to paste the provided code into the editor.
    *   How to save the script, suggesting a project name.
    *   The authorization prompt on first run, explaining that the user must grant the script access to their account.
5.  **Important: setting script properties (when needed):**
    *   If the script needs values such as API keys or webhook URLs, explain how to set them safely without editing the code.
    *   **Spreadsheet/Form-bound:** describe step by step how to set each value from the custom menu (e.g. "Custom menu" -> "Set API key"), including what to type into each UI prompt.
    *   **Standalone:** describe how to set them manually under "Script Properties" in the editor's "Project Settings", naming each property and its value.
    *   Say which properties are required and what each one is for.
6.  **Trigger setup (when needed):**
    *   **Form-bound "on form submit" and similar:** explain how to add the trigger manually in the editor's "Triggers" section (function to run, event source, event type).
    *   **Standalone time-driven triggers and similar:** explain the trigger setup the same way.
7.  **Usage:**
    *   **Spreadsheet-bound:** how to run it from the custom menu.
    *   **Form-bound:** what happens automatically on submission, or how to use the editor menu.
    *   **Standalone:** running directly from the editor, accessing it as a web app, or running via triggers.
8.  **Customization (optional):** point out parts the user may want to adjust, preferring script properties where possible.

Write in plain {language}. Avoid jargon where possible and explain it where it is needed.
Structure the output with clear Markdown headings (## ...) and bullet points for readability.
Output only the manual. Do not include introductory phrases like "Here is the manual:" or closing remarks.
"""


def build_generation_request(
    requirement: str,
    category: Category,
    feature: FeatureTemplate | None = None,
    language: str = DEFAULT_LANGUAGE,
) -> PromptRequest:
    label = Category(category).label
    if feature is not None:
        text = (
            f"The user wants the \"{feature.label}\" feature "
            f"(script type: {label}, V8 runtime compatible). "
            f"The specific requirements are:\n{requirement}"
        )
    else:
        text = (
            f"Create a Google Apps Script (script type: {label}, V8 runtime compatible) "
            f"with the following requirements:\n{requirement}"
        )
    return PromptRequest(text=text, system_instruction=generation_system_instruction(category, language))


def build_explanation_request(
    script: str,
    category: Category,
    language: str = DEFAULT_LANGUAGE,
) -> PromptRequest:
    label = Category(category).label
    text = (
        f"Script type: {label}\n\n"
        f"Write a beginner-friendly operating manual in {language} for the following "
        f"Google Apps Script code.\n\n---\n{script}\n---"
    )
    return PromptRequest(text=text, system_instruction=explanation_system_instruction(language))


def render_history_block(round_number: int, entry: HistoryEntry) -> str:
    """One transcript block of the error-fix context."""
    lines = [
        f"[Round {round_number} - {entry.kind_label}]",
        f"Generated at: {entry.time_label}",
        f"Request: {entry.prompt}",
    ]
    if entry.error_description:
        lines.append(f"Error: {entry.error_description}")
    lines.append(f"Generated script:\n```javascript\n{entry.script}\n```")
    return "\n".join(lines) + "\n\n"


def build_error_fix_request(
    history: Iterable[HistoryEntry],
    error_description: str,
    category: Category,
    image_data_uri: Optional[str] = None,
    language: str = DEFAULT_LANGUAGE,
) -> PromptRequest:
    parts = ["Here is the context of the conversation so far:\n\n"]
    for index, entry in enumerate(history, start=1):
        parts.append(render_history_block(index, entry))

    parts.append("[Current error fix request]\n")
    parts.append(f"Error details: {error_description}\n")
    if image_data_uri:
        parts.append(f"Error screenshot: {image_data_uri}\n")
    parts.append(
        "\nTaking all of the context and error information above into account, "
        "fix the most recent script."
    )
    return PromptRequest(
        text="".join(parts),
        system_instruction=error_fix_system_instruction(category, language),
    )
