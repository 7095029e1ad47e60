"""
nexus-fleet - container fleet management for Nexus prover nodes.

Runs one prover-node container per slot and rotates each slot through a
pool of node-ids on a schedule.

Packages:
    core       Settings, structured errors, logging, resource profiles
    runtime    Docker CLI client and image build context
    fleet      Worker supervisor (one execution unit per slot)
    rotation   Identity pool, rotation state, run lock, rotation engine
    ops        Inventory and manual slot operations (OperationResult API)
    cli        Typer application (``nexus-fleet``)
"""

__version__ = "0.3.0"
