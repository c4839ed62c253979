import pytest

from pubgrublib import BaseReporter


class TestReporter(BaseReporter):
    def __init__(self):
        self._indent = 0
        self.pinned = []
        self.backtracks = []
        self.conflicts = []

    def pinning(self, package, version):
        print(" " * self._indent, "Pin  ", package, " ", version, sep="")
        self.pinned.append((package, version))
        self._indent += 1

    def resolving_conflict(self, incompatibility):
        print(" " * self._indent, "Conflict ", incompatibility, sep="")
        self.conflicts.append(incompatibility)

    def backtracking(self, decision_level):
        self._indent = max(decision_level - 1, 0)
        print(" " * self._indent, "Back to ", decision_level, sep="")
        self.backtracks.append(decision_level)


@pytest.fixture(scope="session")
def reporter_cls():
    return TestReporter


@pytest.fixture()
def reporter(reporter_cls):
    return reporter_cls()
