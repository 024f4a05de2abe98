import pytest

from bpmetadata.data_parser.config_parser import (
    AttributeBag,
    collect_locals,
    decode_string,
    iter_blocks,
    parse_content,
    parse_module_files,
    plain,
    unquote,
    unwrap_expression,
)
from bpmetadata.utils import ParseError


class TestNormalization:
    """python-hcl2 output is normalized the same way across its versions."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ('"roles/owner"', 'roles/owner'),
            ('roles/owner', 'roles/owner'),
            (True, True),
            (None, None),
        ],
    )
    def test_unquote(self, value, expected):
        assert unquote(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ('${string}', 'string'),
            ('"${local.roles[count.index]}"', 'local.roles[count.index]'),
            ('serviceAccount:${var.email}', 'serviceAccount:${var.email}'),
            ('roles/owner', None),
            (3, None),
        ],
    )
    def test_unwrap_expression(self, value, expected):
        assert unwrap_expression(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ('"say \\"hi\\""', 'say "hi"'),
            ('"a\\\\b\\tc"', 'a\\b\tc'),
            ('"\\u00e9t\\u00e9"', '\u00e9t\u00e9'),
            ('"$${var.x}"', '${var.x}'),
            ('<<EOT\nMulti line\nEOT', 'Multi line\n'),
            ('<<-EOT\n    Cluster endpoint\n  EOT', 'Cluster endpoint\n'),
            ('<<EOT\nEOT', ''),
            ('plain', 'plain'),
            (3, 3),
        ],
    )
    def test_decode_string(self, value, expected):
        assert decode_string(value) == expected

    def test_plain_drops_parser_markers(self):
        value = {'__is_block__': True, '"name"': '"x"', 'items': ['"a"', 1]}
        assert plain(value) == {'name': 'x', 'items': ['a', 1]}


class TestAttributeBag:
    def setup_method(self) -> None:
        parsed = parse_content('''
resource "google_project_iam_member" "member" {
  role    = "roles/owner"
  member  = local.member
  members = ["a", "b"]
  count   = 2
}
''')
        _, body = next(iter_blocks(parsed, 'resource', 2))
        self.attributes = AttributeBag(body)

    def test_presence(self):
        assert self.attributes.has('role')
        assert not self.attributes.has('condition')

    def test_typed_lookups(self):
        assert self.attributes.get_string('role') == 'roles/owner'
        assert self.attributes.get_string('member') is None
        assert self.attributes.get_expression('member') == 'local.member'
        assert self.attributes.get_list('members') == ['a', 'b']
        assert self.attributes.get_list('role') is None
        assert self.attributes.get_value('count') == 2

    def test_missing_attribute_is_absent(self):
        assert self.attributes.get_string('condition') is None
        assert self.attributes.get_expression('condition') is None
        assert self.attributes.render_type('type') == ''


def test_iter_blocks_yields_labels_in_order():
    parsed = parse_content('''
resource "a_type" "first" {}
resource "b_type" "second" {}
''')
    labels = [labels for labels, _ in iter_blocks(parsed, 'resource', 2)]
    assert labels == [['a_type', 'first'], ['b_type', 'second']]


def test_collect_locals_merges_blocks():
    parsed = parse_content('''
locals {
  a = ["x"]
}
locals {
  b = "y"
}
''')
    assert plain(collect_locals(parsed)) == {'a': ['x'], 'b': 'y'}


def test_parse_content_raises_parse_error():
    with pytest.raises(ParseError):
        parse_content('variable "x" {', 'broken.tf')


class TestParseModuleFiles:
    def test_strict_mode_raises(self, tmp_path):
        (tmp_path / 'a.tf').write_text('variable "ok" {}\n')
        (tmp_path / 'b.tf').write_text('variable "broken" {\n')

        with pytest.raises(ParseError, match='b.tf'):
            parse_module_files(str(tmp_path), strict=True)

    def test_tolerant_mode_skips_invalid_files(self, tmp_path):
        (tmp_path / 'a.tf').write_text('variable "ok" {}\n')
        (tmp_path / 'b.tf').write_text('variable "broken" {\n')
        (tmp_path / 'notes.txt').write_text('not terraform')

        parsed = parse_module_files(str(tmp_path), strict=False)

        assert [path.endswith('a.tf') for path, _ in parsed] == [True]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ParseError):
            parse_module_files(str(tmp_path / 'missing'))
