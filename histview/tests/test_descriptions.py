import unittest
from datetime import datetime, timezone

from histview.descriptions import (
    EMPTY_SESSION_DESCRIPTION,
    describe_session,
    extract_top_activities,
    find_most_active_directory,
    top_categories,
    truncate_directory_path,
)
from histview.models import CommandRecord, Session

HOME = "/Users/chris"
_T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def _cmd(text: str, directory: str = "", base: str | None = None) -> CommandRecord:
    return CommandRecord(
        sequence_id=0,
        timestamp=_T0,
        text=text,
        directory=directory,
        base_command=base if base is not None else text.split()[0],
    )


def _session(commands: list[CommandRecord], categories: dict[str, int] | None = None) -> Session:
    return Session(
        id=1,
        start_time=_T0,
        end_time=_T0,
        commands=commands,
        directories=list(dict.fromkeys(c.directory for c in commands)),
        categories=categories or {},
    )


class TruncateDirectoryPathTests(unittest.TestCase):
    def test_truncation_table(self) -> None:
        cases = [
            ("/Users/chris", "~"),
            ("/Users/chris/code", "code"),
            ("/Users/chris/code/project", "project"),
            ("/Users/chris/code/project/src", "project/src"),
            ("/Users/chris/code/project/src/components", "src/components"),
            ("/Users/chris/code/warp_experiments/history_viewer/src/lib/utils", "src/lib/utils"),
            ("/", "."),
            ("/usr/local/bin", "local/bin"),
            ("/usr", "usr"),
            ("/opt/a/b/c/d", "b/c/d"),
        ]
        for full_path, expected in cases:
            with self.subTest(path=full_path):
                self.assertEqual(truncate_directory_path(full_path, HOME), expected)

    def test_home_prefix_needs_separator_boundary(self) -> None:
        # /Users/christine is not inside /Users/chris
        self.assertEqual(truncate_directory_path("/Users/christine/code", HOME), "christine/code")


class TopActivitiesTests(unittest.TestCase):
    def test_dominant_command_is_used_alone(self) -> None:
        commands = [_cmd("git status"), _cmd("git add ."), _cmd("git commit -m 'test'"), _cmd("ls -la")]
        self.assertEqual(extract_top_activities(commands), "git")

    def test_two_frequent_commands_are_combined(self) -> None:
        commands = [_cmd("git status"), _cmd("git add ."), _cmd("npm install"), _cmd("npm test"), _cmd("ls")]
        self.assertEqual(extract_top_activities(commands), "git npm")

    def test_local_executable_prefix_is_stripped(self) -> None:
        commands = [_cmd("./history_viewer"), _cmd("./history_viewer -port 8080")]
        self.assertEqual(extract_top_activities(commands), "history_viewer")

    def test_base_command_is_lower_cased(self) -> None:
        commands = [_cmd("Make all"), _cmd("make test"), _cmd("ls")]
        self.assertEqual(extract_top_activities(commands), "make")

    def test_ties_keep_first_seen_order(self) -> None:
        self.assertEqual(extract_top_activities([_cmd("ls"), _cmd("git"), _cmd("ls"), _cmd("git")]), "ls git")
        self.assertEqual(extract_top_activities([_cmd("git"), _cmd("ls"), _cmd("git"), _cmd("ls")]), "git ls")

    def test_top_command_over_a_fifth_is_used_without_a_runner_up(self) -> None:
        commands = [_cmd("git status")] * 4 + [_cmd(f"tool{i} run") for i in range(6)]
        self.assertEqual(extract_top_activities(commands), "git")

    def test_scattered_commands_fall_back_to_work(self) -> None:
        commands = [_cmd(f"tool{i} run") for i in range(10)]
        self.assertEqual(extract_top_activities(commands), "work")

    def test_no_base_commands_falls_back_to_work(self) -> None:
        self.assertEqual(extract_top_activities([_cmd("", base="")]), "work")


class MostActiveDirectoryTests(unittest.TestCase):
    def test_single_directory(self) -> None:
        session = _session([_cmd("ls", "/Users/chris/code/project"), _cmd("ls", "/Users/chris/code/project")])
        self.assertEqual(find_most_active_directory(session), "/Users/chris/code/project")

    def test_most_commands_wins(self) -> None:
        session = _session(
            [
                _cmd("ls", "/Users/chris/code/project"),
                _cmd("ls", "/Users/chris/code/other"),
                _cmd("ls", "/Users/chris/code/other"),
                _cmd("ls", "/Users/chris/code/other"),
            ]
        )
        self.assertEqual(find_most_active_directory(session), "/Users/chris/code/other")

    def test_tie_goes_to_first_seen_directory(self) -> None:
        session = _session(
            [
                _cmd("ls", "/srv/b"),
                _cmd("ls", "/srv/a"),
                _cmd("ls", "/srv/a"),
                _cmd("ls", "/srv/b"),
            ]
        )
        self.assertEqual(find_most_active_directory(session), "/srv/b")


class DescribeSessionTests(unittest.TestCase):
    def test_git_work_in_project(self) -> None:
        project = "/Users/chris/code/project"
        session = _session(
            [_cmd("git status", project), _cmd("git add .", project), _cmd("git commit", project)],
            {"version-control": 3},
        )
        self.assertEqual(describe_session(session, HOME), "project: git [Version Control]")

    def test_mixed_work_lists_two_categories(self) -> None:
        components = "/Users/chris/code/project/src/components"
        session = _session(
            [
                _cmd("git status", components),
                _cmd("git add .", components),
                _cmd("npm test", components),
                _cmd("npm build", components),
                _cmd("ls", components),
            ],
            {"version-control": 2, "build": 2, "file-operations": 1},
        )
        self.assertEqual(
            describe_session(session, HOME),
            "src/components: git npm [Version Control, Build]",
        )

    def test_minor_second_category_is_omitted(self) -> None:
        session = _session(
            [_cmd(f"git {i}", HOME) for i in range(9)] + [_cmd("docker ps", HOME)],
            {"version-control": 9, "containers": 1},
        )
        self.assertEqual(describe_session(session, HOME), "~: git [Version Control]")

    def test_custom_category_display_name(self) -> None:
        session = _session([_cmd("terraform plan", "/Users/chris/infra")], {"cloud-infra": 1})
        self.assertEqual(describe_session(session, HOME), "infra: terraform [Cloud Infra]")

    def test_empty_session(self) -> None:
        self.assertEqual(describe_session(_session([])), EMPTY_SESSION_DESCRIPTION)

    def test_top_categories_ties_keep_mapping_order(self) -> None:
        self.assertEqual(top_categories({"build": 2, "version-control": 2}, 4), ["build", "version-control"])
        self.assertEqual(top_categories({}, 0), [])


if __name__ == "__main__":
    unittest.main()
