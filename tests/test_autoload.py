import asyncio
import sys

import pytest

from namewire import Container, ContainerOptions, DiscoveryError, FileSystemDiscovery


DISCOVERED = {"clock", "mockuserrepository", "user", "usercontroller", "userservice"}


def test_discovery_finds_exported_classes(sample_app_dir):
    classes = FileSystemDiscovery().discover(sample_app_dir)

    assert sorted(cls.__name__ for cls in classes) == [
        "Clock",
        "MockUserRepository",
        "User",
        "UserController",
        "UserService",
    ]


def test_discovery_is_repeatable(sample_app_dir):
    discovery = FileSystemDiscovery()

    first = discovery.discover(sample_app_dir)
    second = discovery.discover(sample_app_dir)

    assert first == second


def test_discovery_of_missing_directory_raises(tmp_path):
    with pytest.raises(DiscoveryError):
        FileSystemDiscovery().discover(tmp_path / "missing")


def test_discovery_reports_broken_modules(tmp_path):
    (tmp_path / "broken.py").write_text("raise ImportError('boom')\n")

    with pytest.raises(DiscoveryError) as ctx:
        FileSystemDiscovery().discover(tmp_path)

    assert "boom" in str(ctx.value)
    assert isinstance(ctx.value.__cause__, ImportError)
    assert not any("_broken_" in name for name in sys.modules if name.startswith("_namewire_discovered"))


def test_discovery_keeps_similarly_named_files_apart(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "a_b").mkdir()
    (tmp_path / "a" / "b_c.py").write_text("class First: ...\n")
    (tmp_path / "a_b" / "c.py").write_text("class Second: ...\n")

    classes = FileSystemDiscovery().discover(tmp_path)

    assert sorted(cls.__name__ for cls in classes) == ["First", "Second"]
    first, second = (sys.modules[cls.__module__] for cls in sorted(classes, key=lambda cls: cls.__name__))
    assert first is not second
    assert first.First.__name__ == "First"
    assert second.Second.__name__ == "Second"


def test_discovery_honours_all_and_skips_private_files(tmp_path):
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "models.py").write_text(
        "__all__ = ['Exported']\n\nclass Exported: ...\n\nclass NotExported: ...\n"
    )
    (tmp_path / "_private.py").write_text("class Private: ...\n")
    (tmp_path / ".hidden").mkdir()
    (tmp_path / ".hidden" / "thing.py").write_text("class Hidden: ...\n")

    classes = FileSystemDiscovery().discover(tmp_path)

    assert [cls.__name__ for cls in classes] == ["Exported"]


def test_discovery_skips_abstract_classes_and_imports(tmp_path):
    (tmp_path / "repos.py").write_text(
        "from abc import ABC, abstractmethod\n"
        "from collections import OrderedDict\n\n"
        "class Repository(ABC):\n"
        "    @abstractmethod\n"
        "    def all(self): ...\n\n"
        "class ListRepository(Repository):\n"
        "    def all(self):\n"
        "        return []\n"
    )

    classes = FileSystemDiscovery().discover(tmp_path)

    assert [cls.__name__ for cls in classes] == ["ListRepository"]


def test_autoload_registers_discovered_types(sample_app_dir):
    c = Container()

    registered = asyncio.run(c.autoload(sample_app_dir))

    assert set(registered) == DISCOVERED
    assert c.has("UserController")
    assert c.has("UserService")
    assert not c.has("UserRepository")
    assert not c.has("NotScanned")
    assert not c.has("_Hidden")


def test_autoloaded_controller_resolves_nested_dependencies(sample_app_dir):
    c = Container()
    asyncio.run(c.autoload(sample_app_dir))
    c.bind_factory("UserRepository", lambda cont: cont.get("MockUserRepository"))

    controller = c.get("UserController")
    result = controller.all()

    assert result["status"] == 200
    assert len(result["body"]["users"]) == 2
    assert result["body"]["users"][0]["name"] == "Jon Snow"
    assert type(controller.user_service.clock).__name__ == "Clock"


def test_autoload_keeps_existing_bindings(sample_app_dir):
    c = Container()
    c.instance("user", "preset")

    registered = asyncio.run(c.autoload(sample_app_dir))

    assert "user" not in registered
    assert c.get("User") == "preset"


def test_autoload_twice_registers_nothing_new(sample_app_dir):
    c = Container()
    asyncio.run(c.autoload(sample_app_dir))

    assert asyncio.run(c.autoload(sample_app_dir)) == []


def test_autoload_uses_configured_directory(sample_app_dir):
    c = Container(ContainerOptions(autoload_dir=sample_app_dir))

    assert set(asyncio.run(c.autoload())) == DISCOVERED


def test_autoload_without_directory_raises():
    with pytest.raises(DiscoveryError):
        asyncio.run(Container().autoload())


def test_autoload_with_custom_discoverer():
    class Greeter:
        def greet(self):
            return "hello"

    class StaticDiscovery:
        def __init__(self, *types):
            self.types = list(types)
            self.roots = []

        def discover(self, root_path):
            self.roots.append(root_path)
            return self.types

    discovery = StaticDiscovery(Greeter)
    c = Container()

    assert asyncio.run(c.autoload("anywhere", discoverer=discovery)) == ["greeter"]
    assert discovery.roots == ["anywhere"]
    assert c.get("greeter").greet() == "hello"
