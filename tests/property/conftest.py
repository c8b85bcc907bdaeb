# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- Stream input (text deltas, completion signal sequences)
- Token counts as providers report them (missing, garbage, negative)
- Metadata fragments for merge tests

Usage:
    from tests.property.conftest import text_deltas, completion_signals

    @given(parts=text_deltas)
    def test_accumulation(parts: list[str]) -> None:
        ...
"""

from __future__ import annotations

from hypothesis import strategies as st

from olakai.contracts.enums import CompletionReason

# =============================================================================
# Stream Strategies
# =============================================================================

# Text deltas as a provider streams them; empty deltas are legal and add nothing
text_deltas = st.lists(st.text(max_size=20), max_size=30)

# Any order of end-of-stream signals, including repeats
completion_signals = st.lists(st.sampled_from(list(CompletionReason)), min_size=1, max_size=10)

# Names of stream surfaces that can deliver text
text_sources = st.sampled_from(["chunks", "text_stream", "full_stream", "event:text", "on_chunk"])

# =============================================================================
# Token Count Strategies
# =============================================================================

token_counts = st.integers(min_value=0, max_value=2_000_000)

# What a provider might put in a usage field: counts, None, or garbage
raw_token_values = st.one_of(
    st.none(),
    token_counts,
    st.integers(max_value=-1),
    st.text(max_size=5),
    st.booleans(),
)

# =============================================================================
# Metadata Strategies
# =============================================================================

optional_strings = st.one_of(st.none(), st.text(min_size=1, max_size=20))

metadata_fragments = st.fixed_dictionaries(
    {},
    optional={
        "model": optional_strings,
        "provider": optional_strings,
        "finish_reason": optional_strings,
        "stream_mode": st.one_of(st.none(), st.booleans()),
        "tokens": st.fixed_dictionaries(
            {},
            optional={
                "prompt": st.one_of(st.none(), token_counts),
                "completion": st.one_of(st.none(), token_counts),
                "total": st.one_of(st.none(), token_counts),
            },
        ),
        "parameters": st.dictionaries(st.sampled_from(["temperature", "top_p", "max_tokens"]), token_counts, max_size=3),
    },
)
