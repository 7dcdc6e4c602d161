"""
Shared pytest fixtures.
"""
import os
import sys

import pytest

# tools/ holds flat scripts, not a package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "tools"))


CLASSIC_LOCK = """\
# THIS IS AN AUTOGENERATED FILE. DO NOT EDIT THIS FILE DIRECTLY.
# yarn lockfile v1


"@types/jest@^29.0.0":
  version "29.0.0"
  resolved "https://registry.yarnpkg.com/@types/jest/-/jest-29.0.0.tgz"
  dependencies:
    "@types/node" "*"

"@types/node@*", "@types/node@^20.0.0":
  version "20.0.0"
  resolved "https://registry.yarnpkg.com/@types/node/-/node-20.0.0.tgz"

lodash.debounce@^4.0.8:
  version "4.0.8"
  resolved "https://registry.yarnpkg.com/lodash.debounce/-/lodash.debounce-4.0.8.tgz"

lodash@^4.17.21:
  version "4.17.21"
  resolved "https://registry.yarnpkg.com/lodash/-/lodash-4.17.21.tgz"
  integrity sha512-v2kDEe57lec

my-utils@1.0.0:
  version "1.0.0"
  resolved "https://registry.yarnpkg.com/my-utils/-/my-utils-1.0.0.tgz"
  dependencies:
    lodash "^4.17.21"
    lodash.debounce "^4.0.8"

react@^18.0.0:
  version "18.2.0"
  resolved "https://registry.yarnpkg.com/react/-/react-18.2.0.tgz"
"""

BERRY_LOCK = """\
# This file is generated by running "yarn install" inside your project.
# Manual changes might be lost - proceed with caution!

__metadata:
  version: 6
  cacheKey: 8

"lodash@npm:^4.17.21":
  version: 4.17.21
  resolution: "lodash@npm:4.17.21"
  checksum: eb835a2e51d381e561e508ce932ea50a8e5a68f4ebdd771ea240d3048244a8d13658acbd502cd4829768c56f2e16bdd4340b9ea141297d472517b83868e677f7
  languageName: node
  linkType: hard

"my-package@workspace:packages/my-package":
  version: 0.0.0-use.local
  resolution: "my-package@workspace:packages/my-package"
  dependencies:
    "@types/node": "npm:*"
    lodash: "npm:^4.17.21"
  languageName: unknown
  linkType: soft
"""


@pytest.fixture
def classic_lock():
    return CLASSIC_LOCK


@pytest.fixture
def berry_lock():
    return BERRY_LOCK
