#!/usr/bin/env python3
# -*- coding: UTF-8 -*-
from spvguard.cli import spvguard_opt

if __name__ == "__main__":
    spvguard_opt._parse_cli_args()
