#!/usr/bin/env python3
"""
PokeChain Arena - terminal edition

Thin wrapper around the ``pokechain`` package's command line client.

To run: python main.py [--identity 0xabc] [--seed 42] [--catalog pokeapi]
"""

from pokechain.cli import run

if __name__ == "__main__":
    run()
