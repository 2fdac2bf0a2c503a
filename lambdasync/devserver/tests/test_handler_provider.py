import os

import pytest

from lambdasync.devserver.core.exceptions import HandlerLoadError
from lambdasync.devserver.services.handler_provider import (
    ModuleHandlerProvider,
    SourceFileWatcher,
    StaticHandlerProvider,
    make_absolute_path,
    strip_extension,
)


def _write(path, source):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source, encoding="utf-8")
    return path


def _bump_mtime(path, seconds=2):
    # Guarantee a visible change even on coarse-grained filesystems.
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


def test_loads_handler_from_file(tmp_path):
    _write(tmp_path / "index.py", "def handler(event, context):\n    return 'v1'\n")

    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))
    handler = provider.current()

    assert handler({}, None) == "v1"
    assert provider.load_count == 1


def test_current_reuses_loaded_handler(tmp_path):
    _write(tmp_path / "index.py", "def handler(event, context):\n    return 'v1'\n")
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))

    first = provider.current()
    second = provider.current()

    assert first is second
    assert provider.load_count == 1


def test_reloads_after_source_change(tmp_path):
    source = _write(tmp_path / "index.py", "def handler(event, context):\n    return 'v1'\n")
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))
    assert provider.current()({}, None) == "v1"

    source.write_text("def handler(event, context):\n    return 'v2'\n", encoding="utf-8")
    _bump_mtime(source)

    assert provider.current()({}, None) == "v2"
    assert provider.load_count == 2


def test_no_reload_when_disabled(tmp_path):
    source = _write(tmp_path / "index.py", "def handler(event, context):\n    return 'v1'\n")
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path), auto_reload=False)
    provider.current()

    source.write_text("def handler(event, context):\n    return 'v2'\n", encoding="utf-8")
    _bump_mtime(source)

    assert provider.current()({}, None) == "v1"
    assert provider.reload()({}, None) == "v2"


def test_nested_path_and_custom_function(tmp_path):
    _write(tmp_path / "src" / "app.py", "def main(event, context):\n    return 'nested'\n")

    provider = ModuleHandlerProvider(
        "src/app.py", project_dir=str(tmp_path), function_name="main"
    )

    assert provider.current()({}, None) == "nested"


def test_module_reference_with_function(tmp_path):
    package = tmp_path / "lambdasync_sample_pkg"
    _write(package / "__init__.py", "")
    _write(package / "api.py", "def entry(event, context):\n    return 'module-ref'\n")

    provider = ModuleHandlerProvider("lambdasync_sample_pkg.api:entry", project_dir=str(tmp_path))

    assert provider.function_name == "entry"
    assert provider.current()({}, None) == "module-ref"


def test_handler_can_import_sibling_modules(tmp_path):
    _write(tmp_path / "lambdasync_sample_util.py", "VALUE = 'sibling'\n")
    _write(
        tmp_path / "index.py",
        "import lambdasync_sample_util\n\n"
        "def handler(event, context):\n"
        "    return lambdasync_sample_util.VALUE\n",
    )

    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))

    assert provider.current()({}, None) == "sibling"


def test_missing_file_raises_load_error(tmp_path):
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))

    with pytest.raises(HandlerLoadError, match="No such file"):
        provider.current()


def test_missing_function_raises_load_error(tmp_path):
    _write(tmp_path / "index.py", "def other(event, context):\n    return None\n")
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))

    with pytest.raises(HandlerLoadError, match="has no 'handler'"):
        provider.current()


def test_non_callable_attribute_raises_load_error(tmp_path):
    _write(tmp_path / "index.py", "handler = 42\n")
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))

    with pytest.raises(HandlerLoadError, match="not callable"):
        provider.current()


def test_syntax_error_then_fix(tmp_path):
    source = _write(tmp_path / "index.py", "def handler(event, context)\n    return 1\n")
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))

    with pytest.raises(HandlerLoadError) as exc_info:
        provider.current()
    assert isinstance(exc_info.value.cause, SyntaxError)

    source.write_text("def handler(event, context):\n    return 'fixed'\n", encoding="utf-8")
    _bump_mtime(source)

    assert provider.current()({}, None) == "fixed"


def test_system_exit_during_import_is_a_load_error(tmp_path):
    _write(tmp_path / "index.py", "raise SystemExit(3)\n")
    provider = ModuleHandlerProvider("index.py", project_dir=str(tmp_path))

    with pytest.raises(HandlerLoadError, match="SystemExit"):
        provider.current()


def test_static_provider_rejects_non_callables():
    with pytest.raises(HandlerLoadError):
        StaticHandlerProvider("not a function")


def test_static_provider_returns_same_handler():
    def handler(event, context):
        return None

    provider = StaticHandlerProvider(handler)

    assert provider.current() is handler
    assert provider.reload() is handler


def test_source_file_watcher(tmp_path):
    source = _write(tmp_path / "index.py", "x = 1\n")
    watcher = SourceFileWatcher(str(source))

    assert watcher.has_changed() is False
    watcher.update_mtime()
    assert watcher.has_changed() is False

    _bump_mtime(source)
    assert watcher.has_changed() is True

    source.unlink()
    assert watcher.has_changed() is False


def test_path_helpers(tmp_path):
    assert strip_extension("index.py") == "index"
    assert strip_extension("pkg.module") == "pkg.module"
    assert make_absolute_path("src/app.py", str(tmp_path)) == str(tmp_path / "src" / "app.py")
    assert make_absolute_path("/abs/app.py", str(tmp_path)) == "/abs/app.py"
