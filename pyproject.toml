[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netpools"
version = "0.1.0"
description = "TCP file-serving thread and process pools with a download client, a broadcast chat server and a console peer chat, built on sockets and selectors."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "tcp",
    "sockets",
    "file transfer",
    "thread pool",
    "process pool",
    "chat",
    "selectors",
    "fd passing",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: File Transfer Protocol (FTP)",
    "Topic :: Communications :: Chat",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
netpools-client = "netpools.client:main"
netpools-thread-server = "netpools.thread_pool:main"
netpools-process-server = "netpools.process_pool:main"
netpools-chat-server = "netpools.chat:server_main"
netpools-chat-client = "netpools.chat:client_main"
netpools-peer = "netpools.peer:main"
netpools-peer-trigger = "netpools.peer:trigger_main"

[tool.hatch.build.targets.wheel]
packages = ["netpools"]

[tool.hatch.build.targets.sdist]
include = ["netpools", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
