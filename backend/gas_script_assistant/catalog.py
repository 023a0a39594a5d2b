"""Script categories and the feature templates offered for each."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List


class Category(str, Enum):
    """Execution context of the generated Apps Script."""

    STANDALONE = "standalone"
    SPREADSHEET = "spreadsheet"
    FORM = "form"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

    @property
    def description(self) -> str:
        return CATEGORY_DESCRIPTIONS[self]


CATEGORY_LABELS = {
    Category.STANDALONE: "Standalone script",
    Category.SPREADSHEET: "Spreadsheet-bound script",
    Category.FORM: "Google Form-bound script",
}

CATEGORY_DESCRIPTIONS = {
    Category.STANDALONE: (
        "Independent script not tied to any file. Good for web apps and general automation."
    ),
    Category.SPREADSHEET: (
        "Embedded in a Google Spreadsheet and driven from a custom menu."
    ),
    Category.FORM: (
        "Embedded in a Google Form to react to submissions or automate the form."
    ),
}

_ALL = (Category.STANDALONE, Category.SPREADSHEET, Category.FORM)
_FILE_BOUND = (Category.STANDALONE, Category.SPREADSHEET)


@dataclass(frozen=True)
class FeatureTemplate:
    """A common automation the user can start from instead of a blank prompt."""

    id: str
    label: str
    description: str
    prompt_example: str
    categories: tuple[Category, ...] = _ALL

    def supports(self, category: Category) -> bool:
        return category in self.categories


FEATURES: tuple[FeatureTemplate, ...] = (
    FeatureTemplate(
        id="line_bot",
        label="Build a LINE bot",
        description="A basic LINE bot that replies to messages.",
        prompt_example=(
            "Create a LINE bot that replies \"Hello!\" when a user sends \"Hi\". "
            "(Keep the webhook URL in script properties.)"
        ),
        categories=_FILE_BOUND,
    ),
    FeatureTemplate(
        id="sheet_manipulation",
        label="Spreadsheet operations",
        description="Read, write, process and format sheet data.",
        prompt_example=(
            "Read the values in column A of the sheet \"Input\" and write "
            "double each value into column B."
        ),
        categories=_FILE_BOUND,
    ),
    FeatureTemplate(
        id="gmail_automation",
        label="Gmail automation",
        description="Automate sending, processing and labelling mail.",
        prompt_example=(
            "When a mail whose subject contains \"Important\" arrives, label it "
            "\"To review\" and star it."
        ),
        categories=_FILE_BOUND,
    ),
    FeatureTemplate(
        id="calendar_integration",
        label="Calendar integration",
        description="Create, edit and fetch calendar events.",
        prompt_example=(
            "Register Google Calendar events using the dates in column B and the "
            "titles in column C of the sheet \"Schedule\"."
        ),
        categories=_FILE_BOUND,
    ),
    FeatureTemplate(
        id="drive_management",
        label="Drive file management",
        description="Create, search, move and share Drive files.",
        prompt_example=(
            "Create a new Google Doc named with today's date inside the Drive "
            "folder \"Reports\"."
        ),
    ),
    FeatureTemplate(
        id="form_response_processing",
        label="Form response processing",
        description="Record form responses in a sheet or send notifications.",
        prompt_example=(
            "When a new Google Form response is submitted, append it to the sheet "
            "\"Responses\" and email the administrator."
        ),
        categories=(Category.FORM, Category.STANDALONE),
    ),
    FeatureTemplate(
        id="web_api",
        label="Fetch Web API data",
        description="Pull data from an external API and record it.",
        prompt_example=(
            "Fetch JSON from https://api.example.com/data and write each item's "
            "\"name\" and \"value\" into the sheet \"API data\". "
            "(Keep the API key in script properties.)"
        ),
    ),
    FeatureTemplate(
        id="doc_generation",
        label="Document generation",
        description="Produce documents from templates or data.",
        prompt_example=(
            "Generate one invoice document per row of the sheet \"Customers\"."
        ),
        categories=_FILE_BOUND,
    ),
    FeatureTemplate(
        id="chat_notification",
        label="Chat notification",
        description="Post notifications to Google Chat.",
        prompt_example=(
            "When cell A1 of the sheet \"Sales\" exceeds 100, notify a Google Chat "
            "space. (Keep the webhook URL in script properties.)"
        ),
    ),
    FeatureTemplate(
        id="discord_notification",
        label="Discord notification",
        description="Send a Discord webhook message when something happens.",
        prompt_example=(
            "When a status in column A of the sheet \"Progress\" becomes \"Done\", "
            "send \"Task done: [task name]\" to a Discord webhook. "
            "(Keep the webhook URL in script properties.)"
        ),
    ),
    FeatureTemplate(
        id="custom_menu_spreadsheet",
        label="Extend the custom menu (spreadsheet)",
        description="Add more items to an existing custom menu.",
        prompt_example=(
            "Add an item to the custom menu \"Tools\" of this spreadsheet that "
            "paints the selected range yellow."
        ),
        categories=(Category.SPREADSHEET,),
    ),
)


def features_for(category: Category) -> List[FeatureTemplate]:
    """Feature templates offered for ``category``, in catalog order."""
    return [feature for feature in FEATURES if feature.supports(category)]


def feature_by_id(feature_id: str) -> FeatureTemplate:
    for feature in FEATURES:
        if feature.id == feature_id:
            return feature
    raise KeyError(feature_id)
