from setuptools import setup

setup(
    name='loancore',
    version='1.0.0',
    description='Time value of money formulas and loan amortization schedules',
    author='Inco',
    url='https://github.com/inco-org/loancore',
    py_modules=['loancore'],
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    install_requires=['typeguard>=4', 'numpy'],
    extras_require={'test': ['pytest']},
    python_requires='>=3.10'
)
