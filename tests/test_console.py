"""Tests for the console module."""

import unittest
from unittest.mock import patch

from rich.console import Console

from gem_license_source._bundler.models import DependencyRecord
from gem_license_source.console import print_error, print_records, print_warning, records_table


def render(renderable) -> str:
    capture = Console(width=120, color_system=None)
    with capture.capture() as output:
        capture.print(renderable)
    return output.get()


class TestRecordsTable(unittest.TestCase):
    """Tests for records_table."""

    def test_sorted_rows(self):
        records = [
            DependencyRecord(name="rack", version="2.2.8", summary="Modular Ruby webserver interface"),
            DependencyRecord(name="i18n", version="1.14.1", homepage="https://github.com/ruby-i18n/i18n"),
        ]
        table = records_table(records, title="Gems")

        self.assertEqual(table.row_count, 2)
        text = render(table)
        self.assertLess(text.index("i18n"), text.index("rack"))
        self.assertIn("Modular Ruby webserver interface", text)

    def test_markup_in_summary_is_literal(self):
        record = DependencyRecord(name="tty", version="0.1.0", summary="Colors like [bold]this[/bold]")
        self.assertIn("[bold]this[/bold]", render(records_table([record])))

    def test_renders_on_any_console(self):
        record = DependencyRecord(name="pg", version="1.5.4", homepage="https://github.com/ged/ruby-pg")
        capture = Console(width=120, color_system="truecolor", force_terminal=True)
        with capture.capture() as output:
            capture.print(records_table([record]))
        self.assertIn("https://github.com/ged/ruby-pg", output.get())


class TestMessages(unittest.TestCase):
    """Tests for warnings and errors."""

    @patch("gem_license_source.console.IS_GITHUB_ACTIONS", True)
    def test_warning_annotation(self):
        with patch("builtins.print") as mock_print:
            print_warning("No Gemfile", title="Not applicable")
        mock_print.assert_called_once_with("::warning title=Not applicable::No Gemfile")

    @patch("gem_license_source.console.IS_GITHUB_ACTIONS", True)
    def test_error_annotation(self):
        with patch("builtins.print") as mock_print:
            print_error("Unable to find a specification for rack")
        mock_print.assert_called_once_with("::error::Unable to find a specification for rack")

    @patch("gem_license_source.console.IS_GITHUB_ACTIONS", False)
    def test_local_error(self):
        with patch("gem_license_source.console.console") as mock_console:
            print_error("bad [value]")
        printed = mock_console.print.call_args.args[0]
        self.assertIn("Error:", printed)
        self.assertIn("\\[value]", printed)

    @patch("gem_license_source.console.console")
    def test_print_records_count(self, mock_console):
        print_records([DependencyRecord(name="rack", version="2.2.8")])
        self.assertIn("1 dependencies", mock_console.print.call_args_list[-1].args[0])
