"""Prompt builders and response normalization."""

import pytest

from gas_script_assistant.catalog import Category, feature_by_id
from gas_script_assistant.history import ERROR_FIX, INITIAL, HistoryEntry
from gas_script_assistant.prompts import (
    build_error_fix_request,
    build_explanation_request,
    build_generation_request,
    category_mandate,
    error_fix_system_instruction,
    explanation_system_instruction,
    generation_system_instruction,
    strip_code_fence,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("```javascript\nfunction onOpen(){...}\n```", "function onOpen(){...}"),
        ("```gas\n  const a = 1;\n\n```  \n", "const a = 1;"),
        ("```\nfunction f() {}\n```", "function f() {}"),
        ("```function f() {}```", "function f() {}"),
        ("  function f() {}  \n", "function f() {}"),
        ("Here is code:\n```js\nx()\n```", "Here is code:\n```js\nx()\n```"),
        ("", ""),
    ],
)
def test_strip_code_fence(raw, expected):
    assert strip_code_fence(raw) == expected


def test_strip_code_fence_is_idempotent():
    once = strip_code_fence("```javascript\nfunction main() {\n  return 1;\n}\n```")
    assert strip_code_fence(once) == once


def test_generation_request_without_feature():
    request = build_generation_request("send a daily mail", Category.STANDALONE)

    assert "Standalone script" in request.text
    assert request.text.endswith("\nsend a daily mail")
    assert request.system_instruction == generation_system_instruction(Category.STANDALONE)


def test_generation_request_names_feature_and_category():
    feature = feature_by_id("sheet_manipulation")
    request = build_generation_request("double column A", Category.SPREADSHEET, feature)

    assert f"\"{feature.label}\"" in request.text
    assert "Spreadsheet-bound script" in request.text
    assert request.text.index(feature.label) < request.text.index("double column A")


def test_category_mandates_differ():
    spreadsheet = generation_system_instruction(Category.SPREADSHEET)
    form = generation_system_instruction(Category.FORM)
    standalone = generation_system_instruction(Category.STANDALONE)

    assert "ALWAYS include an onOpen()" in spreadsheet
    assert "SpreadsheetApp.getUi().prompt()" in spreadsheet
    assert "onFormSubmitResponse(e)" in form
    assert "set up this trigger manually" in form
    assert "Do NOT include an `onOpen()`" in standalone
    assert "Project Settings" in standalone


def test_language_is_threaded_through():
    instruction = generation_system_instruction(Category.SPREADSHEET, language="German")
    assert "should be in German" in instruction
    assert "Japanese" not in instruction


def test_error_fix_instruction_reuses_category_mandate():
    for category in Category:
        instruction = error_fix_system_instruction(category)
        assert instruction.startswith("You are an AI assistant that specializes in debugging")
        assert instruction.endswith(category_mandate(category))


def test_explanation_request_embeds_script_and_label():
    request = build_explanation_request("function onOpen() {}", Category.FORM)

    assert request.text.startswith("Script type: Google Form-bound script")
    assert "---\nfunction onOpen() {}\n---" in request.text
    assert request.system_instruction == explanation_system_instruction()
    assert "user manuals in Japanese" in request.system_instruction
    assert "Trigger setup" in request.system_instruction


def _entries():
    return (
        HistoryEntry(kind=INITIAL, prompt="first request", script="function a() {}"),
        HistoryEntry(
            kind=ERROR_FIX,
            prompt="TypeError: x",
            script="function b() {}",
            error_description="TypeError: x",
        ),
        HistoryEntry(
            kind=ERROR_FIX,
            prompt="RangeError: y",
            script="function c() {}",
            error_description="RangeError: y",
        ),
    )


def test_error_fix_request_renders_every_round_in_order():
    entries = _entries()
    request = build_error_fix_request(entries, "ReferenceError: z", Category.SPREADSHEET)
    text = request.text

    positions = [
        text.index("[Round 1 - Initial generation]"),
        text.index("function a() {}"),
        text.index("[Round 2 - Error fix]"),
        text.index("Error: TypeError: x"),
        text.index("function b() {}"),
        text.index("[Round 3 - Error fix]"),
        text.index("function c() {}"),
        text.index("[Current error fix request]"),
        text.index("Error details: ReferenceError: z"),
    ]
    assert positions == sorted(positions)
    assert f"Generated at: {entries[0].time_label}" in text
    assert "Request: first request" in text
    assert text.rstrip().endswith("fix the most recent script.")
    assert "Error screenshot" not in text
    assert request.system_instruction == error_fix_system_instruction(Category.SPREADSHEET)


def test_error_fix_request_inlines_image():
    request = build_error_fix_request(
        _entries()[:1],
        "boom",
        Category.FORM,
        image_data_uri="data:image/png;base64,AAAA",
    )

    assert "Error screenshot: data:image/png;base64,AAAA\n" in request.text
    assert request.text.index("Error details: boom") < request.text.index("Error screenshot")


def test_initial_round_has_no_error_line():
    request = build_error_fix_request(_entries()[:1], "boom", Category.FORM)
    block = request.text.split("[Current error fix request]")[0]
    assert "Error:" not in block
