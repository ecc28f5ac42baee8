from __future__ import annotations

from typing import Any
import zlib

import pytest
from pypdf.generic import DictionaryObject, NameObject

from pdftextx.colorspace import DEVICE_RGB
from pdftextx.fonts import FontResolver
from pdftextx.interpreter import ContentInterpreter, GlyphFragment, matrix_multiply
from pdftextx.objects import Document
from pdftextx.resilience import FailureClass, WarningLog

from conftest import PdfBuilder, pdf_dict


def _run(
    builder: PdfBuilder,
    content: bytes,
    resources: DictionaryObject | None = None,
    **options: Any,
) -> tuple[ContentInterpreter, list[GlyphFragment], WarningLog]:
    builder.page(content, resources, fonts={"F1": builder.standard_font("Helvetica")})
    document = Document.load(builder.to_bytes())
    page = document.pages[0]
    log = WarningLog()
    interpreter = ContentInterpreter(document.resolver, FontResolver(document.resolver, log), log, **options)
    runs = interpreter.run(document.resolver.content_bytes(page.contents), page.resources)
    return interpreter, [fragment for run in runs for fragment in run.fragments], log


def test_matrix_multiply_applies_right_operand_first() -> None:
    scale = (2.0, 0.0, 0.0, 2.0, 0.0, 0.0)
    translate = (1.0, 0.0, 0.0, 1.0, 10.0, 5.0)

    assert matrix_multiply(scale, translate) == (2.0, 0.0, 0.0, 2.0, 20.0, 10.0)
    assert matrix_multiply(translate, scale) == (2.0, 0.0, 0.0, 2.0, 10.0, 5.0)


def test_glyph_positions_follow_widths(pdf_builder: PdfBuilder) -> None:
    _, fragments, log = _run(pdf_builder, b"BT /F1 10 Tf 72 700 Td (AB) Tj ET")

    assert [fragment.text for fragment in fragments] == ["A", "B"]
    assert fragments[0].x == pytest.approx(72)
    assert fragments[0].y == pytest.approx(700)
    assert fragments[0].advance == pytest.approx(6.67)
    assert fragments[1].x == pytest.approx(78.67)
    assert fragments[0].font_size == pytest.approx(10)
    assert len(log) == 0


def test_tj_numbers_move_the_pen(pdf_builder: PdfBuilder) -> None:
    _, fragments, _ = _run(pdf_builder, b"BT /F1 10 Tf [(A) -1000 (B) 667 (C)] TJ ET")

    assert [fragment.x for fragment in fragments] == pytest.approx([0.0, 16.67, 16.67 + 6.67 - 6.67])


def test_character_and_word_spacing(pdf_builder: PdfBuilder) -> None:
    _, fragments, _ = _run(pdf_builder, b"BT /F1 10 Tf 2 Tc 3 Tw (A B) Tj ET")

    assert [fragment.text for fragment in fragments] == ["A", " ", "B"]
    assert fragments[1].x == pytest.approx(8.67)
    assert fragments[2].x == pytest.approx(8.67 + 2.78 + 5)


def test_horizontal_scaling_and_rise(pdf_builder: PdfBuilder) -> None:
    _, fragments, _ = _run(pdf_builder, b"BT /F1 10 Tf 50 Tz 4 Ts (AB) Tj ET")

    assert fragments[0].y == pytest.approx(4)
    assert fragments[1].x == pytest.approx(6.67 / 2)


def test_leading_and_next_line_operators(pdf_builder: PdfBuilder) -> None:
    content = b"BT /F1 10 Tf 0 700 Td 0 -12 TD (A) Tj T* (B) Tj 14 TL (C) ' 1 2 (D) \" ET"

    interpreter, fragments, _ = _run(pdf_builder, content)

    assert [(fragment.text, round(fragment.y, 3)) for fragment in fragments] == [
        ("A", 688.0),
        ("B", 676.0),
        ("C", 662.0),
        ("D", 648.0),
    ]
    assert interpreter.state.word_spacing == 1
    assert interpreter.state.character_spacing == 2


def test_text_matrix_and_ctm_scale_the_font(pdf_builder: PdfBuilder) -> None:
    _, fragments, _ = _run(pdf_builder, b"2 0 0 2 0 0 cm BT /F1 10 Tf 1 0 0 1 5 5 Tm (A) Tj ET")

    assert (fragments[0].x, fragments[0].y) == pytest.approx((10, 10))
    assert fragments[0].font_size == pytest.approx(20)
    assert fragments[0].advance == pytest.approx(13.34)


def test_q_restores_state_and_extra_q_is_ignored(pdf_builder: PdfBuilder) -> None:
    interpreter, fragments, log = _run(pdf_builder, b"q 3 0 0 3 0 0 cm Q Q Q BT /F1 10 Tf (A) Tj ET")

    assert fragments[0].font_size == pytest.approx(10)
    assert interpreter.stack == []
    assert len(log) == 0


def test_show_without_font_warns(pdf_builder: PdfBuilder) -> None:
    _, fragments, log = _run(pdf_builder, b"BT (A) Tj /F9 12 Tf [(B)] TJ ET")

    assert fragments == []
    assert [event.failure for event in log] == [FailureClass.NO_FONT_SELECTED] * 2
    assert log.events[1].context["operator"] == "TJ"


def test_path_operand_shortage_skips_operator(pdf_builder: PdfBuilder) -> None:
    interpreter, _, log = _run(pdf_builder, b"10 m 1 2 3 4 re")

    assert [event.failure for event in log] == [FailureClass.PATH_OPERANDS]
    assert log.events[0].context["required"] == 2
    assert interpreter.path.subpaths == [[(1.0, 2.0), (4.0, 2.0), (4.0, 6.0), (1.0, 6.0), (1.0, 2.0)]]


def test_line_on_empty_path_starts_at_origin(pdf_builder: PdfBuilder) -> None:
    interpreter, _, log = _run(pdf_builder, b"10 20 l")

    assert log.count(FailureClass.EMPTY_PATH_POINT) == 1
    assert interpreter.path.subpaths == [[(0.0, 0.0), (10.0, 20.0)]]


def test_painting_clears_the_path(pdf_builder: PdfBuilder) -> None:
    interpreter, _, log = _run(pdf_builder, b"0 0 m 5 5 l 1 1 2 2 3 3 c S 7 w")

    assert not interpreter.path
    assert interpreter.state.line_width == 7
    assert len(log) == 0


def test_malformed_colorspace_falls_back_to_rgb(pdf_builder: PdfBuilder) -> None:
    spaces = DictionaryObject({NameObject("/CS0"): pdf_dict({"Broken": 1})})
    resources = DictionaryObject({NameObject("/ColorSpace"): spaces})

    interpreter, fragments, log = _run(pdf_builder, b"/CS0 cs 0.5 0.5 0.5 sc BT /F1 10 Tf (A) Tj ET", resources)

    assert [event.failure for event in log] == [FailureClass.MALFORMED_COLORSPACE]
    assert interpreter.state.fill_space is DEVICE_RGB
    assert interpreter.state.fill_color == (0.5, 0.5, 0.5)
    assert [fragment.text for fragment in fragments] == ["A"]


def test_device_colour_operators(pdf_builder: PdfBuilder) -> None:
    interpreter, _, log = _run(pdf_builder, b"0 0 0 1 K 0.2 g /DeviceRGB CS")

    assert interpreter.state.stroke_color == (0.0, 0.0, 0.0)
    assert interpreter.state.fill_color == (0.2,)
    assert len(log) == 0


def _form(builder: PdfBuilder, data: bytes, **entries: Any) -> Any:
    return builder.stream(data, {"Type": "XObject", "Subtype": "Form", "BBox": [0, 0, 500, 500], **entries})


def test_form_xobject_text_is_emitted(pdf_builder: PdfBuilder) -> None:
    form = _form(pdf_builder, b"BT /F1 10 Tf (B) Tj ET", Matrix=[1, 0, 0, 1, 100, 0])
    resources = DictionaryObject({NameObject("/XObject"): DictionaryObject({NameObject("/X1"): form})})

    interpreter, fragments, log = _run(pdf_builder, b"BT /F1 10 Tf (A) Tj ET /X1 Do BT /F1 10 Tf (C) Tj ET", resources)

    assert [fragment.text for fragment in fragments] == ["A", "B", "C"]
    assert fragments[1].x == pytest.approx(100)
    assert interpreter.state.ctm == (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)
    assert len(log) == 0


def test_self_referencing_form_is_skipped(pdf_builder: PdfBuilder) -> None:
    form = _form(pdf_builder, b"BT /F1 10 Tf (B) Tj ET /X1 Do")
    resources = DictionaryObject({NameObject("/XObject"): DictionaryObject({NameObject("/X1"): form})})

    _, fragments, log = _run(pdf_builder, b"/X1 Do", resources)

    assert [fragment.text for fragment in fragments] == ["B"]
    assert [event.failure for event in log] == [FailureClass.XOBJECT]


def test_form_nesting_limit(pdf_builder: PdfBuilder) -> None:
    inner = _form(pdf_builder, b"BT /F1 10 Tf (I) Tj ET")
    inner_resources = DictionaryObject(
        {
            NameObject("/Font"): DictionaryObject({NameObject("/F1"): pdf_builder.standard_font("Helvetica")}),
            NameObject("/XObject"): DictionaryObject({NameObject("/X2"): inner}),
        }
    )
    outer = _form(pdf_builder, b"BT /F1 10 Tf (O) Tj ET /X2 Do")
    pdf_builder.writer.get_object(outer)[NameObject("/Resources")] = inner_resources
    resources = DictionaryObject({NameObject("/XObject"): DictionaryObject({NameObject("/X1"): outer})})

    _, fragments, log = _run(pdf_builder, b"/X1 Do", resources, max_xobject_depth=1)

    assert [fragment.text for fragment in fragments] == ["O"]
    assert [event.failure for event in log] == [FailureClass.XOBJECT]


def test_truncated_form_content_is_skipped(pdf_builder: PdfBuilder) -> None:
    compressed = zlib.compress(b"BT /F1 10 Tf (Lost) Tj ET" * 4)
    form = _form(pdf_builder, compressed[: len(compressed) // 2], Filter="FlateDecode")
    resources = DictionaryObject({NameObject("/XObject"): DictionaryObject({NameObject("/X1"): form})})

    _, fragments, log = _run(pdf_builder, b"/X1 Do BT /F1 10 Tf (A) Tj ET", resources)

    assert [fragment.text for fragment in fragments] == ["A"]
    assert [event.failure for event in log] == [FailureClass.XOBJECT]


def test_malformed_tokens_warn_once_per_page(pdf_builder: PdfBuilder) -> None:
    _, fragments, log = _run(pdf_builder, b"BT /F1 10 Tf (A) Tj ) ) ) (B) Tj ET")

    assert [fragment.text for fragment in fragments] == ["A", "B"]
    assert [event.failure for event in log] == [FailureClass.CONTENT_STREAM_TOKEN]


def test_ext_gstate_can_select_a_font(pdf_builder: PdfBuilder) -> None:
    font = pdf_builder.standard_font("Courier")
    params = pdf_builder.add(pdf_dict({"Type": "ExtGState", "LW": 3, "Font": [font, 12]}))
    resources = DictionaryObject({NameObject("/ExtGState"): DictionaryObject({NameObject("/GS1"): params})})

    interpreter, fragments, log = _run(pdf_builder, b"/GS1 gs BT (AB) Tj ET", resources)

    assert [fragment.text for fragment in fragments] == ["A", "B"]
    assert fragments[1].x == pytest.approx(7.2)
    assert interpreter.state.line_width == 3
    assert len(log) == 0
