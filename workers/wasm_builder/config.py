"""
Builder configuration
"""
import shlex
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict

from wasm_builder.core.conversion import ToolSpec
from wasm_builder.policy.profile import DEFAULT_STACK_SIZE, StageName


class BuilderSettings(BaseSettings):
    """Builder settings, overridable through the environment or .env"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Toolchain
    CARGO_BIN: str = "cargo"
    RUSTC_BIN: str = "rustc"

    # Conversion tools; {input} and {output} are substituted per stage
    WASM_STRIP_COMMAND: str = "wasm-tools strip -a {input} -o {output}"
    WASM2WAT_COMMAND: str = "wasm2wat {input} -o {output}"
    RWASM_COMMAND: str = "rwasm compile {input} -o {output}"
    CWASM_COMMAND: str = "wasmtime compile {input} -o {output}"

    # Build defaults
    DEFAULT_STACK_SIZE: int = DEFAULT_STACK_SIZE
    ARTIFACTS_SUBDIR: str = "artifacts"

    def conversion_tools(self) -> Dict[StageName, ToolSpec]:
        """Tool specs for every conversion stage."""
        wat = ToolSpec.from_command_line(shlex.split(self.WASM2WAT_COMMAND))
        return {
            StageName.STRIP: ToolSpec.from_command_line(shlex.split(self.WASM_STRIP_COMMAND)),
            StageName.WAT: wat,
            StageName.STRIPPED_WAT: wat,
            StageName.RWASM: ToolSpec.from_command_line(shlex.split(self.RWASM_COMMAND)),
            StageName.CWASM: ToolSpec.from_command_line(shlex.split(self.CWASM_COMMAND)),
        }

    def wasm2wat_tool(self) -> ToolSpec:
        return ToolSpec.from_command_line(shlex.split(self.WASM2WAT_COMMAND))
