import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from ..config import NetworkConfig
from ..models import CompiledContract
from .contract_utility import ContractUtility
from .logging_utility import SUCCESS

logger = logging.getLogger(__name__)

VERIFY_SUCCESS_MARKERS: tuple[str, ...] = (
    "verification submitted",
    "has already been verified",
    "successfully verified contract",
)

HARDHAT_CONFIG_TEMPLATE = """require("@nomicfoundation/hardhat-verify");

module.exports = {{
  solidity: "0.8.28",
  networks: {{
    "{network}": {{
      url: "{rpc_url}",
      chainId: {chain_id},
      accounts: [process.env.{key_env}]
    }}
  }},
  etherscan: {{
    apiKey: {{
      "{network}": process.env.EXPLORER_API_KEY || "{api_key}"
    }},
    customChains: [
      {{
        network: "{network}",
        chainId: {chain_id},
        urls: {{
          apiURL: "{api_url}",
          browserURL: "{browser_url}"
        }}
      }}
    ]
  }},
  sourcify: {{
    enabled: false
  }}
}};
"""


class HardhatError(Exception):
    """Raised when a Hardhat command fails or produces no usable output."""


async def run_command(*cmd: str, cwd: Path) -> tuple[int, str, str]:
    """Run an external command and capture its output.

    Returns:
        Tuple of (exit code, stdout, stderr)
    """
    logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd})")
    process = await asyncio.create_subprocess_exec(
        *cmd,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return process.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")


class HardhatCompiler:
    """Compiles the token contract with ``npx hardhat compile``."""

    def __init__(self, project_dir: Path, contract_name: str = "CustomToken") -> None:
        """
        Initialize the compiler.

        Args:
            project_dir: Directory holding the Hardhat project and contracts/
            contract_name: Contract (and source file) name without extension
        """
        self.project_dir = Path(project_dir)
        self.contract_name = contract_name

    @property
    def artifact_path(self) -> Path:
        name = self.contract_name
        return self.project_dir / "artifacts" / "contracts" / f"{name}.sol" / f"{name}.json"

    async def compile(self) -> CompiledContract:
        """
        Compile the contract and load its artifact.

        Raises:
            HardhatError: If compilation fails or the artifact is missing
        """
        logger.info("🛠️ Running Hardhat compile...")
        returncode, stdout, stderr = await run_command("npx", "hardhat", "compile", cwd=self.project_dir)
        if returncode != 0:
            logger.error(f"🛠️ Hardhat compile failed: {stderr.strip() or stdout.strip()}")
            raise HardhatError(f"hardhat compile exited with code {returncode}")
        logger.log(SUCCESS, "🛠️ Hardhat compile succeeded.")

        if not self.artifact_path.exists():
            raise HardhatError(f"📦 Artifact not found: {self.artifact_path}")
        return ContractUtility.load_artifact(self.artifact_path)


class HardhatVerifier:
    """Verifies deployed contracts on the explorer with ``npx hardhat verify``."""

    CONFIG_FILE: str = "hardhat.config.cjs"

    def __init__(
        self,
        project_dir: Path,
        network: NetworkConfig,
        explorer_api_key: str = "empty",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.project_dir = Path(project_dir)
        self.network = network
        self.explorer_api_key = explorer_api_key
        self._sleep = sleep

    @property
    def config_path(self) -> Path:
        return self.project_dir / self.CONFIG_FILE

    def is_installed(self) -> bool:
        return (self.project_dir / "node_modules" / "hardhat" / "package.json").exists()

    def is_configured(self) -> bool:
        return self.config_path.exists()

    async def install(self) -> None:
        """Install Hardhat and the verification plugin.

        Raises:
            HardhatError: If npm fails
        """
        logger.info("🔧 Installing Hardhat and verification plugin...")
        returncode, _, stderr = await run_command(
            "npm", "install", "--save-dev", "hardhat", "@nomicfoundation/hardhat-verify",
            cwd=self.project_dir,
        )
        if returncode != 0:
            logger.error(f"🔧 Failed to install Hardhat: {stderr.strip()}")
            raise HardhatError(f"npm install exited with code {returncode}")
        logger.log(SUCCESS, "🔧 Hardhat and verification plugin installed successfully.")

    def write_config(self, rpc_url: str, key_env: str = "MAIN_PRIVATE_KEY") -> Path:
        """
        Write the Hardhat config pointing at the given endpoint.

        The private key is referenced through the environment, never written.
        """
        content = HARDHAT_CONFIG_TEMPLATE.format(
            network=self.network.network_name,
            rpc_url=rpc_url,
            chain_id=self.network.chain_id,
            key_env=key_env,
            api_key=self.explorer_api_key,
            api_url=self.network.explorer_api_url,
            browser_url=self.network.explorer_browser_url,
        )
        self.config_path.write_text(content)
        logger.info(f"📝 Updated Hardhat config with stable RPC: {rpc_url}")
        return self.config_path

    async def verify(
        self,
        address: str,
        constructor_args: Sequence[object],
        max_attempts: int = 3,
        retry_delay: float = 5,
    ) -> bool:
        """
        Verify a deployed contract, retrying a bounded number of times.

        Never raises for command failures; returns False instead.

        Args:
            address: Deployed contract address
            constructor_args: Constructor arguments used at deployment
            max_attempts: Maximum number of verification attempts
            retry_delay: Seconds between attempts

        Returns:
            True if the explorer accepted or already had the verification
        """
        cmd = [
            "npx", "hardhat", "verify",
            "--network", self.network.network_name,
            address,
            *(str(arg) for arg in constructor_args),
        ]
        logger.info(f"🔍 Verifying contract with Hardhat: {' '.join(cmd)}")

        for attempt in range(1, max_attempts + 1):
            logger.info(f"🔍 Contract verification attempt: {attempt}/{max_attempts}")
            try:
                returncode, stdout, stderr = await run_command(*cmd, cwd=self.project_dir)
            except OSError as e:
                logger.error(f"🔍 Attempt {attempt} failed: {e}")
            else:
                output = f"{stdout}\n{stderr}".lower()
                if any(marker in output for marker in VERIFY_SUCCESS_MARKERS):
                    logger.log(SUCCESS, f"🔍 Hardhat verification successful: {stdout.strip()}")
                    return True
                logger.warning(
                    f"🔍 Attempt {attempt} failed (exit {returncode}). "
                    f"Output: {(stdout or stderr).strip()}"
                )

            if attempt < max_attempts:
                logger.info(f"🔍 Retrying contract verification in {retry_delay:.0f} seconds...")
                await self._sleep(retry_delay)

        logger.error(
            f"🔍 Contract verification failed after {max_attempts} attempts. "
            "Please verify manually using Hardhat."
        )
        return False
