"""Release pipeline domain: stages, trigger, credential, lock and orchestrator."""
