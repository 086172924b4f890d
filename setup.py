import setuptools

with open("README.md", "r") as fh:

    long_description = fh.read()

setuptools.setup(
    name="orapac",
    version="1.0.0",
    author="Cru DBA team",
    description="Oracle host administration: Ansible modules and command line tools",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/CruGlobal/cru-ansible-modules",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    # the Ansible modules live at the top of the repo
    py_modules=["findoradbs", "runssh", "sqltojson", "jsonvalue", "updoratab", "raconereloc"],
    install_requires=[
        "ansible-core",
        "oracledb",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "loggy=orapac.cli:loggy_main",
            "find-oracle-databases=orapac.cli:find_main",
            "run-ssh-command=orapac.cli:ssh_main",
            "sql-to-json=orapac.cli:sql_main",
            "json-value=orapac.cli:json_main",
            "update-oratab=orapac.cli:oratab_main",
            "relocate-racone=orapac.cli:racone_main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires='>=3.7',
)
