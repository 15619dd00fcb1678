"""
This module provides the Modules class, which locates and verifies the external
tools the transcoder depends on (ffmpeg and ffprobe).
"""
import subprocess
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import MODULE_PATH


class Modules:
    """
    A utility class for the external ffmpeg executables.

    It reads the `ffmpeg_dir` path from the user's `config.user.yaml` to locate
    the executables and falls back to the system's PATH if no directory is
    configured.
    """

    @staticmethod
    def _get_executable_path(name: str, module_path: Optional[Path] = MODULE_PATH) -> str:
        """
        Determines the command or absolute path to use for an executable.

        The configured `ffmpeg_dir` takes priority. If it is not set or does not
        contain the executable, the bare name is returned so the system PATH is
        used. Windows executables get their '.exe' suffix.
        """
        exe_name = f"{name}.exe" if sys.platform == "win32" else name

        if module_path and module_path.is_dir():
            configured_path = module_path / exe_name
            if configured_path.is_file():
                logger.debug(f"Using {name} from configured path: '{configured_path}'")
                return str(configured_path)
            else:
                logger.warning(f"`ffmpeg_dir` is configured, but '{exe_name}' was not found there. Falling back to system PATH.")

        return name

    @staticmethod
    def get_ffmpeg_path() -> str:
        return Modules._get_executable_path("ffmpeg")

    @staticmethod
    def get_ffprobe_path() -> str:
        return Modules._get_executable_path("ffprobe")

    @staticmethod
    def verify_ffmpeg() -> bool:
        """
        Verifies that ffmpeg is installed and can be executed.

        Runs `ffmpeg -version` and logs the first line of its output. A failure
        is logged with a hint on how to configure the location.

        Returns:
            True if ffmpeg answered, False otherwise.
        """
        ffmpeg_cmd = Modules.get_ffmpeg_path()

        try:
            result = subprocess.run(
                [ffmpeg_cmd, "-version"],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
            )
            version_output_lines = result.stdout.splitlines()
            first_line = version_output_lines[0] if version_output_lines else "(no output)"
            logger.info(f"FFmpeg version check successful: {first_line}")
            return True
        except subprocess.CalledProcessError as e:
            logger.error(f"FFmpeg version command failed (return code {e.returncode}):\n{e.stderr}")
        except FileNotFoundError:
            logger.error(
                "FFmpeg command not found. Please ensure FFmpeg is installed and accessible.\n"
                "You can either add it to your system's PATH or specify its location in the 'config.user.yaml' file."
            )
        except OSError as e:
            logger.error(f"An unexpected error occurred while checking FFmpeg version: {e}")
        return False
