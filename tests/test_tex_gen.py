"""
Tests for content fingerprinting and document assembly.
"""

import re

import pytest

from tikzsvg.tex_gen import (
    PACKAGES,
    TIKZ_LIBRARIES,
    build_document,
    fingerprint,
)


BODY = r"""\begin{tikzpicture}
  \draw[thick] (0,0) circle (1);
\end{tikzpicture}"""


class TestFingerprint:
    def test_deterministic(self):
        assert fingerprint(BODY, r"\def\x{1}") == fingerprint(BODY, r"\def\x{1}")

    def test_lowercase_hex_fixed_length(self):
        fp = fingerprint(BODY)
        assert re.fullmatch(r"[0-9a-f]{32}", fp)
        assert len(fingerprint("")) == len(fp)

    def test_known_digest(self):
        # md5("") -- keeps cache names compatible across versions.
        assert fingerprint("", "") == "d41d8cd98f00b204e9800998ecf8427e"

    def test_preamble_defaults_to_empty(self):
        assert fingerprint(BODY) == fingerprint(BODY, "")

    def test_source_byte_change(self):
        assert fingerprint(r"\node{A};") != fingerprint(r"\node{B};")

    def test_preamble_byte_change(self):
        assert fingerprint(BODY, r"\def\x{1}") != fingerprint(BODY, r"\def\x{2}")

    def test_whitespace_is_significant(self):
        assert fingerprint(r"\node{A};") != fingerprint(r"\node{A}; ")
        assert fingerprint(BODY, "") != fingerprint(BODY, "\n")

    def test_inputs_are_concatenated_without_separator(self):
        assert fingerprint("ab", "c") == fingerprint("a", "bc")

    def test_non_ascii(self):
        assert fingerprint("Đường tròn") != fingerprint("Duong tron")


class TestBuildDocument:
    def test_standalone_class_with_border(self):
        doc = build_document(BODY)
        assert doc.startswith(r"\documentclass[tikz,border=2pt]{standalone}")

    def test_fixed_packages_present(self):
        doc = build_document(BODY)
        for package in PACKAGES:
            assert package in doc
        assert r"\pgfplotsset{compat=newest}" in doc

    def test_tikz_libraries(self):
        doc = build_document(BODY)
        expected = r"\usetikzlibrary{" + ",".join(TIKZ_LIBRARIES) + "}"
        assert expected in doc
        for lib in ("arrows", "calc", "intersections", "shapes.geometric",
                    "patterns", "positioning", "angles", "quotes", "3d"):
            assert lib in TIKZ_LIBRARIES

    def test_preamble_before_begin_document(self):
        preamble = r"\newcommand{\R}{\mathbb{R}}"
        doc = build_document(BODY, preamble)
        assert doc.index(preamble) < doc.index(r"\begin{document}")
        assert doc.index(r"\usetikzlibrary") < doc.index(preamble)

    def test_body_inside_document(self):
        doc = build_document(BODY)
        begin = doc.index(r"\begin{document}")
        end = doc.index(r"\end{document}")
        assert begin < doc.index(BODY) < end
        assert doc.endswith(r"\end{document}")

    def test_deterministic(self):
        assert build_document(BODY, "%x") == build_document(BODY, "%x")

    def test_no_validation(self):
        doc = build_document(r"\badcommand{")
        assert r"\badcommand{" in doc

    def test_template_delimiters_in_input_are_verbatim(self):
        body = r"\node {<< x >>}; % <% if %> {{ y }} {% z %}"
        doc = build_document(body, "<# note #>")
        assert body in doc
        assert "<# note #>" in doc

    def test_one_package_per_line(self):
        lines = build_document(BODY).splitlines()
        assert lines[1] == PACKAGES[0]
        assert lines[len(PACKAGES)] == PACKAGES[-1]
