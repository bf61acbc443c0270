# Copyright (C) Inco - All Rights Reserved.
#
# Unauthorized copying of this file, via any medium, is strictly prohibited. Proprietary and confidential.
#
# Refs
# ====
#
#  • http://towardsdatascience.com/pytest-with-marking-mocking-and-fixtures-in-10-minutes-678d7ccd2f70
#  • http://medium.com/worldsensing-techblog/tips-and-tricks-for-unit-tests-b35af5ba79b1.
#

'''Conftest module.'''

import pytest

import loancore

def pytest_configure(config):
    config.addinivalue_line('markers', 'smoke: mark test as smoke')
    config.addinivalue_line('markers', 'limitation: test reveals an intentional limitation of the API')

@pytest.fixture
def reference_loan():
    '''One million, twelve months, 7% a year. Equal payments.'''

    return loancore.Loan(1000000.0, 12, 0.07)
