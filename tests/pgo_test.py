from pathlib import Path
import json
import os
import shutil
import subprocess
import sys
import tempfile
import unittest
from unittest import mock

sys.path.insert(0, os.fspath(Path(__file__).parent.parent))

from cargo_pgo.build import CargoCommand
from cargo_pgo.exceptions import ProfileError, ToolNotFoundError
from cargo_pgo.pgo import find_llvm_profdata
from cargo_pgo.pgo.instrument import pgo_instrument, pgo_rustflags
from cargo_pgo.pgo.optimize import (
    gather_profiles,
    merge_profiles,
    pgo_optimize,
    pgo_optimize_rustflags,
)
from cargo_pgo.workspace import CargoWorkspace


def _completed(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
    return subprocess.CompletedProcess([], returncode, stdout, stderr)


def _build_output(executable: Path) -> bytes:
    return "\n".join(
        [
            json.dumps(
                {
                    "reason": "compiler-artifact",
                    "target": {"name": executable.name, "kind": ["bin"]},
                    "executable": str(executable),
                }
            ),
            json.dumps({"reason": "build-finished", "success": True}),
        ]
    ).encode()


class PgoTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.workspace = CargoWorkspace(self.temp_dir, self.temp_dir / "target")
        self.pgo_dir = self.temp_dir / "target" / "pgo-profiles"

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class PgoInstrumentTest(PgoTestCase):
    def test_instrument(self):
        self.pgo_dir.mkdir(parents=True)
        (self.pgo_dir / "old.profraw").write_bytes(b"old")
        executable = self.temp_dir / "target" / "release" / "app"

        with mock.patch(
            "cargo_pgo.pgo.instrument.get_cargo_workspace", return_value=self.workspace
        ), mock.patch(
            "cargo_pgo.pgo.instrument.cargo_command_with_flags",
            return_value=_completed(_build_output(executable)),
        ) as mock_cargo:
            executables = pgo_instrument(CargoCommand.RUN, ["--", "arg"])

        mock_cargo.assert_called_once_with(
            CargoCommand.RUN, f"-Cprofile-generate={self.pgo_dir}", ["--", "arg"]
        )
        self.assertEqual(executables, [executable])
        self.assertEqual(list(self.pgo_dir.iterdir()), [])

    def test_rustflags(self):
        self.assertEqual(
            pgo_rustflags(Path("/t/pgo-profiles")), "-Cprofile-generate=/t/pgo-profiles"
        )


class PgoOptimizeTest(PgoTestCase):
    def test_gather_profiles(self):
        self.pgo_dir.mkdir(parents=True)
        (self.pgo_dir / "b.profraw").write_bytes(b"b")
        (self.pgo_dir / "a.profraw").write_bytes(b"a")
        (self.pgo_dir / "merged.profdata").write_bytes(b"m")

        self.assertEqual(
            [p.name for p in gather_profiles(self.pgo_dir)], ["a.profraw", "b.profraw"]
        )

    def test_gather_profiles_missing_dir(self):
        self.assertEqual(gather_profiles(self.pgo_dir), [])

    def test_merge_without_profiles(self):
        with self.assertRaises(ProfileError):
            merge_profiles(Path("/usr/bin/llvm-profdata"), self.pgo_dir)

    @mock.patch("cargo_pgo.pgo.optimize.run_command")
    def test_merge(self, mock_run):
        mock_run.return_value = _completed()
        self.pgo_dir.mkdir(parents=True)
        (self.pgo_dir / "a.profraw").write_bytes(b"a")

        merged = merge_profiles(Path("/usr/bin/llvm-profdata"), self.pgo_dir)

        self.assertEqual(merged, self.pgo_dir / "merged.profdata")
        cmd = [str(arg) for arg in mock_run.call_args[0][0]]
        self.assertEqual(
            cmd,
            [
                "/usr/bin/llvm-profdata",
                "merge",
                "-o",
                str(self.pgo_dir / "merged.profdata"),
                str(self.pgo_dir / "a.profraw"),
            ],
        )

    @mock.patch("cargo_pgo.pgo.optimize.run_command")
    def test_merge_failure(self, mock_run):
        mock_run.return_value = _completed(stderr=b"unsupported version", returncode=1)
        self.pgo_dir.mkdir(parents=True)
        (self.pgo_dir / "a.profraw").write_bytes(b"a")

        with self.assertRaises(ProfileError) as cm:
            merge_profiles(Path("/usr/bin/llvm-profdata"), self.pgo_dir)
        self.assertIn("unsupported version", str(cm.exception))

    def test_optimize(self):
        self.pgo_dir.mkdir(parents=True)
        (self.pgo_dir / "a.profraw").write_bytes(b"a")
        executable = self.temp_dir / "target" / "release" / "app"

        with mock.patch(
            "cargo_pgo.pgo.optimize.get_cargo_workspace", return_value=self.workspace
        ), mock.patch(
            "cargo_pgo.pgo.optimize.find_llvm_profdata",
            return_value=Path("/usr/bin/llvm-profdata"),
        ), mock.patch(
            "cargo_pgo.pgo.optimize.run_command", return_value=_completed()
        ), mock.patch(
            "cargo_pgo.pgo.optimize.cargo_command_with_flags",
            return_value=_completed(_build_output(executable)),
        ) as mock_cargo:
            executables = pgo_optimize(CargoCommand.BUILD, [])

        merged = self.pgo_dir / "merged.profdata"
        mock_cargo.assert_called_once_with(
            CargoCommand.BUILD, pgo_optimize_rustflags(merged), []
        )
        self.assertIn(f"-Cprofile-use={merged}", pgo_optimize_rustflags(merged))
        self.assertEqual(executables, [executable])


class FindLlvmProfdataTest(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    @mock.patch("cargo_pgo.toolchain.shutil.which", return_value="/usr/bin/llvm-profdata")
    def test_on_path(self, mock_which):
        self.assertEqual(find_llvm_profdata(), Path("/usr/bin/llvm-profdata"))

    @mock.patch("cargo_pgo.pgo.get_default_target", return_value="x86_64-unknown-linux-gnu")
    @mock.patch("cargo_pgo.toolchain.shutil.which", return_value=None)
    def test_in_sysroot(self, mock_which, mock_target):
        tool = (
            self.temp_dir / "lib" / "rustlib" / "x86_64-unknown-linux-gnu" / "bin" / "llvm-profdata"
        )
        tool.parent.mkdir(parents=True)
        tool.write_text("")

        with mock.patch("cargo_pgo.pgo.get_rustc_sysroot", return_value=self.temp_dir):
            self.assertEqual(find_llvm_profdata(), tool)

    @mock.patch("cargo_pgo.pgo.get_rustc_sysroot", return_value=None)
    @mock.patch("cargo_pgo.toolchain.shutil.which", return_value=None)
    def test_missing(self, mock_which, mock_sysroot):
        with self.assertRaises(ToolNotFoundError) as cm:
            find_llvm_profdata()
        self.assertIn("llvm-tools-preview", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
