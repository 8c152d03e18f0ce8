# Root conftest.
# The pytest11 entry point imports playback_proxy before pytest-cov starts
# measuring, which would leave those modules at 0% coverage. The fixtures are
# provided by tests/conftest.py instead.


def pytest_configure(config):
    plugin = config.pluginmanager.get_plugin("playback-proxy")
    if plugin is not None:
        config.pluginmanager.unregister(plugin)
