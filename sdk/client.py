"""
Chain Gateway SDK

Simple Python SDK for executing chains via the gateway API.
"""

import time
from typing import Dict, Any, List, Optional

import requests

TERMINAL_STATUSES = ("completed", "stopped", "failed")


class ChainGatewaySDK:
    """
    Client for the Chain Gateway API

    Example:
        >>> sdk = ChainGatewaySDK(gateway_url="http://localhost:8001")
        >>> result = sdk.execute_chain("character_context", {"userId": "user1"})
        >>> print(result["success"], result["output"])
    """

    def __init__(self, gateway_url: str = "http://localhost:8001", session=None):
        """
        Initialize the SDK

        Args:
            gateway_url: URL of the Chain Gateway API
            session: Optional requests-compatible session
        """
        self.gateway_url = gateway_url.rstrip('/')
        self.session = session or requests.Session()

    def _get(self, path: str, **params) -> Any:
        params = {key: value for key, value in params.items() if value is not None}
        response = self.session.get(f"{self.gateway_url}{path}", params=params or None)
        response.raise_for_status()
        return response.json()

    def _post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        response = self.session.post(f"{self.gateway_url}{path}", json=payload or {})
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _payload(
        input: Optional[Dict[str, Any]],
        env: Optional[Dict[str, Any]],
        user_id: Optional[str]
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"input": input or {}, "env": env or {}}
        if user_id:
            payload["user_id"] = user_id
        return payload

    # ========================================================================
    # Chains
    # ========================================================================

    def list_chains(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List available chains

        Returns:
            List of chain summaries
        """
        return self._get("/chains", user_id=user_id)["chains"]

    def get_chain(self, chain_id) -> Dict[str, Any]:
        """Chain definition, summary and validation report"""
        return self._get(f"/chains/{chain_id}")

    def execute_chain(
        self,
        chain_id,
        input: Optional[Dict[str, Any]] = None,
        env: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Execute a saved chain and wait for its ExecutionResult

        Args:
            chain_id: Chain ID or name
            input: Chain input
            env: Values exposed as {{env.*}}
            user_id: Invoking user

        Returns:
            ExecutionResult dict

        Raises:
            requests.HTTPError: 404 when the chain does not exist

        Example:
            >>> result = sdk.execute_chain(3, {"userId": "user1"})
            >>> for step in result["steps"]:
            ...     print(step["step_id"], step["success"])
        """
        return self._post(f"/chains/{chain_id}/execute", self._payload(input, env, user_id))

    def execute_ad_hoc_chain(
        self,
        chain: Dict[str, Any],
        input: Optional[Dict[str, Any]] = None,
        env: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Execute a chain definition that is not saved"""
        payload = self._payload(input, env, user_id)
        payload["chain"] = chain
        return self._post("/chains/execute", payload)

    # ========================================================================
    # Background runs
    # ========================================================================

    def start_chain(
        self,
        chain_id,
        input: Optional[Dict[str, Any]] = None,
        env: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> str:
        """
        Start a saved chain in the background

        Returns:
            Workflow ID
        """
        return self._post(f"/chains/{chain_id}/start", self._payload(input, env, user_id))["workflow_id"]

    def get_chain_status(self, workflow_id: str) -> Dict[str, Any]:
        """Status of a background chain run"""
        return self._get(f"/chains/status/{workflow_id}")

    def get_chain_result(self, workflow_id: str) -> Dict[str, Any]:
        """ExecutionResult of a background chain run (blocks until it finishes)"""
        return self._get(f"/chains/result/{workflow_id}")

    def cancel_chain(self, workflow_id: str) -> Dict[str, Any]:
        """Cancel a background chain run"""
        return self._post(f"/chains/cancel/{workflow_id}")

    def wait_for_result(
        self,
        workflow_id: str,
        poll_interval: float = 2.0,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Poll a background run until it finishes

        Args:
            workflow_id: Workflow ID from start_chain()
            poll_interval: How often to check status (seconds)
            timeout: Maximum time to wait (seconds), None for no timeout

        Returns:
            ExecutionResult dict

        Raises:
            TimeoutError: If timeout is exceeded
            RuntimeError: If the run failed before producing a result
        """
        start_time = time.time()

        while True:
            status = self.get_chain_status(workflow_id)

            if status['status'] in TERMINAL_STATUSES:
                if status['status'] == 'failed' and status.get('success') is None:
                    raise RuntimeError(f"Chain run {workflow_id} failed")
                return self.get_chain_result(workflow_id)

            if timeout and (time.time() - start_time) > timeout:
                raise TimeoutError(f"Chain run {workflow_id} did not complete within {timeout} seconds")

            time.sleep(poll_interval)

    # ========================================================================
    # History & health
    # ========================================================================

    def list_executions(
        self,
        user_id: Optional[str] = None,
        chain_id=None,
        success: Optional[bool] = None,
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """Recorded executions, newest first"""
        return self._get(
            "/executions",
            user_id=user_id,
            chain_id=chain_id,
            success=None if success is None else str(success).lower(),
            limit=limit,
        )["executions"]

    def get_execution(self, execution_id) -> Dict[str, Any]:
        """Full trace of a recorded execution"""
        return self._get(f"/executions/{execution_id}")

    def get_statistics(self) -> Dict[str, Any]:
        """Aggregate execution statistics"""
        return self._get("/stats")

    def modules_health(self) -> Dict[str, Any]:
        """Health of configured modules"""
        return self._get("/modules/health")

    def health_check(self) -> Dict[str, Any]:
        """
        Check if the gateway is healthy

        Returns:
            Health status
        """
        return self._get("/health")


# Convenience function for one-off usage
def execute_chain(
    chain_id,
    input: Optional[Dict[str, Any]] = None,
    gateway_url: str = "http://localhost:8001"
) -> Dict[str, Any]:
    """
    Execute a chain without creating an SDK instance

    Example:
        >>> from sdk.client import execute_chain
        >>> result = execute_chain("character_context", {"userId": "user1"})
    """
    sdk = ChainGatewaySDK(gateway_url=gateway_url)
    return sdk.execute_chain(chain_id, input)
