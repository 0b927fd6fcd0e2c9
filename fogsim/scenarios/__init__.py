#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""Ready-made simulation scenarios."""
