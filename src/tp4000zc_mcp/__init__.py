"""Decoder and MCP server for the TekPower TP4000ZC serial multimeter."""

__version__ = "0.1.0"
