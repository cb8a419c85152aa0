"""
Document assembly and content fingerprinting.

A TikZ fragment on its own is not compilable.  This module wraps the
fragment and the author's preamble into a complete ``standalone``
document with a fixed package set, and computes the content fingerprint
that names both the compilation workspace and the cached SVG.

The document template is rendered with Jinja2 using custom delimiters
that do not collide with LaTeX's brace-heavy syntax:

  - Variables: << variable >>
  - Blocks:    <% block %>
  - Comments:  <# comment #>

The fingerprint covers the *raw* inputs, not the assembled document, so
a cached SVG stays addressable by ``(source, preamble)`` alone.
"""

from __future__ import annotations

import hashlib

from jinja2 import BaseLoader, Environment


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PACKAGES = (
    r"\usepackage[utf8]{vietnam}",
    r"\usepackage{amsmath,amssymb}",
    r"\usepackage{tkz-tab}",
    r"\usepackage{tkz-euclide}",
    r"\usepackage{pgfplots}",
)

PGFPLOTS_COMPAT = "newest"

TIKZ_LIBRARIES = (
    "arrows",
    "calc",
    "intersections",
    "shapes.geometric",
    "patterns",
    "positioning",
    "angles",
    "quotes",
    "3d",
)

_DOCUMENT_TEMPLATE = r"""
\documentclass[tikz,border=2pt]{standalone}
<% for package in packages %>
<< package >>
<% endfor %>
\pgfplotsset{compat=<< compat >>}
\usetikzlibrary{<< libraries | join(",") >>}
<< preamble >>
\begin{document}
<< body >>
\end{document}
"""

_env = Environment(
    loader=BaseLoader(),
    variable_start_string="<<",
    variable_end_string=">>",
    comment_start_string="<#",
    comment_end_string="#>",
    block_start_string="<%",
    block_end_string="%>",
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=False,
    autoescape=False,
)
_template = _env.from_string(_DOCUMENT_TEMPLATE)


# ---------------------------------------------------------------------------
# Fingerprint
# ---------------------------------------------------------------------------

def fingerprint(source: str, preamble: str = "") -> str:
    """
    Return the cache key for a ``(source, preamble)`` pair.

    MD5 over the UTF-8 bytes of ``source + preamble`` (no separator),
    as lowercase hex.  No normalization: a single changed byte,
    whitespace included, yields a different key.
    """
    data = (source + preamble).encode("utf-8")
    return hashlib.md5(data).hexdigest()


# ---------------------------------------------------------------------------
# Document assembly
# ---------------------------------------------------------------------------

def build_document(body: str, preamble: str = "") -> str:
    """
    Wrap a TikZ body and preamble into a complete standalone document.

    Neither input is validated; malformed LaTeX surfaces only when the
    LaTeX stage runs.
    """
    rendered = _template.render(
        packages=PACKAGES,
        compat=PGFPLOTS_COMPAT,
        libraries=TIKZ_LIBRARIES,
        preamble=preamble,
        body=body,
    )
    return rendered.strip()
