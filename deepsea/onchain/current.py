"""
Tooling state kept next to the project: the current deployment record
(.current.json) and the named wallet address book (.wallets.json).
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from django.conf import settings
from web3 import Web3

logger = logging.getLogger(__name__)


def network_name(chain_id: int) -> str:
    return settings.NETWORKS.get(int(chain_id), ("Unknown", ""))[0]


def explorer_address_url(chain_id: int, address: str) -> Optional[str]:
    explorer = settings.NETWORKS.get(int(chain_id), ("Unknown", ""))[1]
    if not explorer:
        return None
    return f"{explorer}/address/{address}"


@dataclass
class DeploymentRecord:
    contract_address: str
    network: str
    chain_id: str
    deployer: str
    deployed_at: str

    # JSON keys as written by the deployment tooling
    _KEYS = {
        "contract_address": "contractAddress",
        "network": "network",
        "chain_id": "chainId",
        "deployer": "deployer",
        "deployed_at": "deployedAt",
    }

    @classmethod
    def create(cls, contract_address: str, chain_id: int, deployer: str) -> "DeploymentRecord":
        return cls(
            contract_address=contract_address,
            network=network_name(chain_id),
            chain_id=str(chain_id),
            deployer=deployer,
            deployed_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "DeploymentRecord":
        path = Path(path or settings.CURRENT_CONTRACT_FILE)
        if not path.exists():
            raise FileNotFoundError(f"{path.name} file not found. Please deploy the contract first.")
        with open(path, "r") as f:
            data = json.load(f)
        return cls(**{field: data[key] for field, key in cls._KEYS.items()})

    def save(self, path: Optional[Path] = None) -> Path:
        path = Path(path or settings.CURRENT_CONTRACT_FILE)
        data = {key: getattr(self, field) for field, key in self._KEYS.items()}
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Contract info saved to {path}")
        return path

    @property
    def deployed_timestamp(self) -> int:
        return int(datetime.fromisoformat(self.deployed_at.replace("Z", "+00:00")).timestamp())

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


def estimate_deploy_block(
    deployed_timestamp: int,
    current_block: int,
    now: Optional[float] = None,
    block_time: Optional[float] = None,
) -> int:
    """Rough deployment block from the elapsed time and the average block time"""
    now = time.time() if now is None else now
    block_time = block_time or settings.AVERAGE_BLOCK_TIME_SECONDS
    blocks_ago = int(max(0, now - deployed_timestamp) // block_time)
    return max(0, current_block - blocks_ago)


class AddressBook:
    """Named wallets (name -> address) stored as a flat JSON object"""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.WALLETS_FILE)
        self.wallets: Dict[str, str] = {}
        if self.path.exists():
            with open(self.path, "r") as f:
                self.wallets = json.load(f)

    def names(self):
        return sorted(self.wallets)

    def add(self, name: str, address: str) -> str:
        if not Web3.is_address(address):
            raise ValueError(f"Invalid address: {address}")
        self.wallets[name] = Web3.to_checksum_address(address)
        with open(self.path, "w") as f:
            json.dump(self.wallets, f, indent=2)
        return self.wallets[name]

    def resolve(self, value: str) -> str:
        """Address for a saved wallet name, or ``value`` itself if it is an address"""
        value = value.strip()
        if value in self.wallets:
            return Web3.to_checksum_address(self.wallets[value])
        if Web3.is_address(value):
            return Web3.to_checksum_address(value)
        raise ValueError(f"'{value}' is neither a saved wallet nor a valid address")
