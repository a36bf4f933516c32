from api.features.chat.frames import (
    ContentFrame,
    MetadataFrame,
    RawFrame,
    forwardable_text,
    parse_chunk,
    unquote_content,
)


def test_content_frame_is_unquoted():
    assert parse_chunk('0:"Hello"') == [ContentFrame("Hello")]


def test_multiline_chunk_yields_frame_per_line():
    chunk = '0:"Hi"\n0:" there"\ne:{"finishReason":"stop"}\nd:{"usage":{}}\n'
    frames = parse_chunk(chunk)
    assert frames == [
        ContentFrame("Hi"),
        ContentFrame(" there"),
        MetadataFrame(tag="e", payload='{"finishReason":"stop"}'),
        MetadataFrame(tag="d", payload='{"usage":{}}'),
    ]
    assert [forwardable_text(f) for f in frames] == ["Hi", " there", None, None]


def test_escapes_in_content_are_decoded():
    assert parse_chunk('0:"line\\nbreak \\"quoted\\""') == [
        ContentFrame('line\nbreak "quoted"')
    ]


def test_plain_text_passes_through_unchanged():
    assert parse_chunk("Hello world") == [RawFrame("Hello world")]
    assert parse_chunk(" leading space") == [RawFrame(" leading space")]


def test_mixed_chunk_is_treated_as_raw():
    chunk = '0:"a"\nnot a frame'
    assert parse_chunk(chunk) == [RawFrame(chunk)]


def test_unquoted_content_tag_is_raw():
    assert parse_chunk("0:42") == [RawFrame("0:42")]


def test_empty_chunk_yields_nothing():
    assert parse_chunk("") == []


def test_whitespace_chunk_is_forwarded_as_raw():
    assert parse_chunk("\n") == [RawFrame("\n")]


def test_unquote_falls_back_to_stripping_quotes():
    assert unquote_content('"bad \\x escape"') == "bad \\x escape"
    assert unquote_content('"ok"') == "ok"
