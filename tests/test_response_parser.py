"""Tests for the planning-response line grammar."""

from weam_integrator.response_parser import (
    Blank,
    Body,
    Marker,
    normalize_path,
    parse_directives,
    tokenize,
)


class TestTokenize:

    def test_line_kinds(self):
        tokens = tokenize("File: server.js\nadd middleware\n   \n")

        assert tokens == [Marker("server.js"), Body("add middleware"), Blank()]

    def test_markdown_decoration(self):
        assert tokenize("**File:** src/app.js") == [Marker("src/app.js")]
        assert tokenize("### File: `models/User.js`") == [Marker("models/User.js")]
        assert tokenize("- File: lib/db.js") == [Marker("lib/db.js")]

    def test_file_word_inside_sentence_is_body(self):
        assert tokenize("Profile: admin") == [Body("Profile: admin")]
        assert tokenize("Update the File: header") == [Body("Update the File: header")]

    def test_empty_input(self):
        assert tokenize("") == []
        assert tokenize(None) == []


class TestParseDirectives:

    def test_directives_in_order(self):
        text = """Here is the plan.

File: server.js
Import weamSessionMiddleware.
Protect /api routes.

File: models/User.js
Add weam user fields.
"""
        directives = parse_directives(text)

        assert [d.file_path for d in directives] == ["server.js", "models/User.js"]
        assert directives[0].rationale == "Import weamSessionMiddleware.\nProtect /api routes.\n"
        assert directives[1].rationale == "Add weam user fields.\n"

    def test_leading_text_is_dropped(self):
        directives = parse_directives("intro\nmore intro\nFile: a.js\nchange\n")

        assert len(directives) == 1
        assert "intro" not in directives[0].rationale

    def test_no_markers_means_no_directives(self):
        assert parse_directives("I cannot help with that.") == []
        assert parse_directives("") == []

    def test_repeated_path_replaces_earlier(self):
        directives = parse_directives("File: a.js\nfirst\nFile: b.js\nx\nFile: a.js\nsecond\n")

        assert [d.file_path for d in directives] == ["a.js", "b.js"]
        assert directives[0].rationale == "second\n"

    def test_marker_without_path_opens_nothing(self):
        directives = parse_directives("File:\norphan body\nFile: a.js\nkept\n")

        assert [(d.file_path, d.rationale) for d in directives] == [("a.js", "kept\n")]

    def test_marker_without_body(self):
        directives = parse_directives("File: a.js\nFile: b.js\nbody\n")

        assert [(d.file_path, d.rationale) for d in directives] == [("a.js", ""), ("b.js", "body\n")]

    def test_equivalent_paths_are_one_directive(self):
        directives = parse_directives(
            "File: server.js\nadd auth\nFile: ./server.js\nadd branding\nFile: src//a.js\nx\n"
        )

        assert [d.file_path for d in directives] == ["server.js", "src/a.js"]
        assert directives[0].rationale == "add branding\n"


def test_normalize_path():
    assert normalize_path("./routes/../server.js") == "server.js"
    assert normalize_path("lib\\weam\\session.js") == "lib/weam/session.js"
    assert normalize_path("../escape.js") == "../escape.js"
    assert normalize_path("") == ""
