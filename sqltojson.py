#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Module for Ansible to run a query and get the rows back as a list Ansible
# can iterate over ( and as JSON text ).

from ansible.module_utils.basic import AnsibleModule

from orapac import config
from orapac.dbug import debugg, set_debugging
from orapac.errors import OrapacError
from orapac.sqljson import sql_to_json

ANSIBLE_METADATA = {'status': ['stableinterface'],
                    'supported_by': 'Cru DBA team',
                    'version': '0.1'}

DOCUMENTATION = '''
---
module: sqltojson
short_description: Run sql against a database as sys, system, or any user
                   and return the rows as a list of dictionaries keyed by
                   column name. Runs through sqlplus, or through oracledb
                   with engine: oracledb.

notes: Returned values are then available to use in Ansible.
requirements: [ python3, sqlplus or oracledb ]
author: "DBA Oracle module Team"
'''

EXAMPLES = '''

    Usage: Run a query against a database and get a list returned that is
           iterable by Ansible.

    - local_action:
        module: sqltojson
        sql: "select name, open_mode from v$database"
        username: sys                                       (1)
        password: "{{ database_passwords[db_name].sys }}"
        hostname: "{{ inventory_hostname }}"
        port: 1521
        service_name: "{{ db_name }}"                       (2)
        engine: sqlplus                                     (3)
        refname: db_info                                    (4)
        ignore_errors: False                                (5)
        debugging: False
      when: master_node|bool

    - debug: msg="{{ db_info.rows[0].OPEN_MODE }}"

      (1) username - sys connects as sysdba. Default GV_DB_USERNAME ( sys )

      (2) service_name or sid. service_name wins if both are given.
          connection_string can be passed instead of all of the above.

      (3) engine - sqlplus ( default ) or oracledb

      (4) refname - name used to reference the returned rows. Default: sqlfacts

      (5) ignore_errors - True: don't fail the play if the query fails.

    returns:
        db_info:
            rows: [ { NAME: ORCL, OPEN_MODE: READ WRITE } ]
            json: '[{"NAME":"ORCL","OPEN_MODE":"READ WRITE"}]'
            count: 1
'''

default_refname = "sqlfacts"


def main():
    """Run a query, return the rows"""

    module = AnsibleModule(
        argument_spec=dict(
            sql=dict(required=True),
            connection_string=dict(required=False, no_log=True),
            username=dict(required=False),
            password=dict(required=False, no_log=True),
            hostname=dict(required=False),
            port=dict(required=False),
            sid=dict(required=False),
            service_name=dict(required=False),
            engine=dict(required=False, default="sqlplus", choices=["sqlplus", "oracledb"]),
            refname=dict(required=False),
            ignore_errors=dict(required=False),
            debugging=dict(required=False)
        ),
        supports_check_mode=False,
    )

    v_refname = module.params.get('refname')
    v_ignore_err = module.params.get('ignore_errors')
    set_debugging(module.params.get('debugging'))

    if v_ignore_err is None:
        vignore = config.default_ignore
    else:
        vignore = config.is_true(v_ignore_err)

    refname = v_refname or default_refname
    ansible_facts = {refname: {}}

    try:
        rows, json_text = sql_to_json(module.params.get('sql'),
                                      connection_string=module.params.get('connection_string'),
                                      username=module.params.get('username'),
                                      password=module.params.get('password'),
                                      hostname=module.params.get('hostname'),
                                      port=module.params.get('port'),
                                      sid=module.params.get('sid'),
                                      service_name=module.params.get('service_name'),
                                      engine=module.params.get('engine') or "sqlplus")
    except OrapacError as e:
        ansible_facts[refname] = {'rows': [], 'json': "[]", 'count': 0}
        if vignore:
            module.exit_json(msg=str(e), ansible_facts=ansible_facts, changed=False)
        module.fail_json(msg=str(e), ansible_facts=ansible_facts, rc=e.rc, changed=False)
        return

    ansible_facts[refname] = {'rows': rows, 'json': json_text, 'count': len(rows)}
    vmsg = "sqltojson finished successfully. {} row(s) returned.".format(len(rows))
    debugg(vmsg)
    module.exit_json(msg=vmsg, ansible_facts=ansible_facts, changed=False)


# code to execute if this program is called directly
if __name__ == "__main__":
    main()
