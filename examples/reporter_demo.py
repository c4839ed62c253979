from packaging.specifiers import SpecifierSet
from packaging.version import Version

import pubgrublib

index = """
root 1.0.0
    first
first 1.0.0
    second == 1.0.0
first 2.0.0
    second == 2.0.0
    third == 1.0.0
first 3.0.0
    second == 3.0.0
    third == 2.0.0
second 1.0.0
    third == 1.0.0
second 2.0.0
    third == 2.0.0
second 3.0.0
    third == 3.0.0
third 1.0.0
third 2.0.0
third 3.0.0
"""

_OPERATORS = {
    "==": pubgrublib.Range.singleton,
    ">=": pubgrublib.Range.higher_than,
    ">": pubgrublib.Range.strictly_higher_than,
    "<=": pubgrublib.Range.lower_than,
    "<": pubgrublib.Range.strictly_lower_than,
}


def to_range(specifier_set):
    """Convert simple version specifiers to a version range."""
    result = pubgrublib.Range.full()
    for specifier in specifier_set:
        version = Version(specifier.version)
        if specifier.operator == "!=":
            version_range = pubgrublib.Range.singleton(version).complement()
        else:
            version_range = _OPERATORS[specifier.operator](version)
        result = result.intersection(version_range)
    return result


def splitstrip(s, parts):
    return [item.strip() for item in s.strip().split(maxsplit=parts - 1)]


def read_index(lines, provider):
    latest = None
    for line in lines:
        if not line or line.startswith("#"):
            continue
        if not line.startswith(" "):
            name, version = splitstrip(line, 2)
            latest = (name, Version(version))
            provider.add_dependencies(*latest)
        else:
            if latest is None:
                raise RuntimeError("Index has dependencies before first package")
            name, _, specifier = line.strip().partition(" ")
            dependencies = dict(provider.dependencies(*latest))
            dependencies[name] = to_range(SpecifierSet(specifier))
            provider.add_dependencies(*latest, dependencies)


class Reporter(pubgrublib.BaseReporter):
    def starting(self):
        print("starting()")

    def starting_round(self, index):
        print(f"starting_round({index})")

    def ending_round(self, index, state):
        print(f"ending_round({index}, ...)")

    def ending(self, state):
        print("ending(...)")

    def adding_incompatibility(self, incompatibility):
        print(f"  adding_incompatibility({incompatibility})")

    def resolving_conflict(self, incompatibility):
        print(f"  resolving_conflict({incompatibility})")

    def backtracking(self, decision_level):
        print(f"  backtracking({decision_level})")

    def pinning(self, package, version):
        print(f"  pinning({package}, {version})")


if __name__ == "__main__":
    from pprint import pprint

    provider = pubgrublib.OfflineDependencyProvider()
    read_index(index.splitlines(), provider)
    reporter = Reporter()
    resolver = pubgrublib.Resolver(provider, reporter)

    result = resolver.resolve("root", Version("1.0.0"))

    pprint(result.mapping)
