#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Module for Ansible to find the Oracle databases running on a host.
#
# A running database is found by its pmon process ( ora_pmon_<SID> ).
# For each one the SID, pmon PID, owning user and the ORACLE_HOME it runs
# out of are returned.
#
#  To use your custom module pass it in to the playbook using:
#  --module-path custom_modules

from ansible.module_utils.basic import AnsibleModule

from orapac import config
from orapac import pmon
from orapac.dbug import add_to_msg, debugg, set_debugging
from orapac.errors import OrapacError
from orapac.utils import host_name

ANSIBLE_METADATA = {'status': ['stableinterface'],
                    'supported_by': 'Cru DBA team',
                    'version': '0.1'}

DOCUMENTATION = '''
---
module: findoradbs
short_description: Find the Oracle databases running on a host.

notes: Returned values are then available to use in Ansible.
requirements: [ python3, RHEL / Oracle Linux ]
author: "DBA Oracle module Team"
'''

EXAMPLES = '''

    # find the databases running on each host
    - name: find running databases
      findoradbs:
        refname: "{{ refname_str }}"    (1)
        ignore_errors: False            (2)
        debugging: False
      register: run_dbs

    - debug: msg="{{ item.database }} {{ item.oracle_home }}"
      loop: "{{ running_dbs.databases }}"

      (1) refname - name used to reference the facts. Default: running_dbs

      (2) ignore_errors - True: don't fail the play if no database is running.

    returns:
        running_dbs:
            hostname: tlorad01
            databases:
              - database: orcl1
                oracle_home: /app/oracle/19c/dbhome_1
                oracle_user: oracle
                pid: 12345
                hostname: tlorad01
                timestamp: 2024-01-01T00:00:00Z
'''

default_refname = "running_dbs"


def main():
    """Return the running databases as ansible facts"""

    module = AnsibleModule(
        argument_spec=dict(
            refname=dict(required=False),
            ignore_errors=dict(required=False),
            debugging=dict(required=False)
        ),
        supports_check_mode=True,
    )

    v_refname = module.params.get('refname')
    v_ignore_err = module.params.get('ignore_errors')
    v_debug = module.params.get('debugging')

    set_debugging(v_debug)

    if v_ignore_err is None:
        vignore = config.default_ignore
    else:
        vignore = config.is_true(v_ignore_err)

    refname = v_refname or default_refname
    # can't reference before setting refname
    ansible_facts = {refname: {}}

    hostname = host_name()
    try:
        pmon.validate_environment()
        instances = pmon.running_instances()
    except OrapacError as e:
        add_to_msg(str(e))
        ansible_facts[refname] = {'databases': [], 'hostname': hostname}
        if vignore:
            module.exit_json(msg=str(e), ansible_facts=ansible_facts, changed=False)
        module.fail_json(msg=str(e), ansible_facts=ansible_facts, rc=e.rc, changed=False)
        return

    ansible_facts[refname] = {
        'databases': pmon.instance_records(instances, hostname),
        'hostname': hostname,
    }

    vmsg = "findoradbs found {} running database(s) on {}".format(len(instances), hostname)
    debugg(vmsg)
    module.exit_json(msg=vmsg, ansible_facts=ansible_facts, changed=False)


# code to execute if this program is called directly
if __name__ == "__main__":
    main()
