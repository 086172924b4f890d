#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Purpose: pull one value out of a JSON string ( i.e. the json returned by
# sqltojson ) using a path like ID, user.name, items[0] or [0].NAME

from ansible.module_utils.basic import AnsibleModule

from orapac import config
from orapac.dbug import debugg, set_debugging
from orapac.errors import OrapacError
from orapac.jsonval import json_value

ANSIBLE_METADATA = {'status': ['stableinterface'],
                    'supported_by': 'Cru DBA team',
                    'version': '0.1'}

DOCUMENTATION = '''
---
module: jsonvalue
short_description: This module will extract a value from a JSON string by key path.

notes: Returned values and results that are then available to use in Ansible.
requirements: [ python3 ]
author: "DBA Oracle module Team"
'''

EXAMPLES = '''

    Usage: Provide a JSON string and the path of the item you want.

    - name: get the open mode
      local_action:
        module: jsonvalue
    (1)    json: "{{ db_info.json }}"
    (2)    key: "[0].OPEN_MODE"
    (3) refname: open_mode
    (4) ignore_errors: False
        debugging: False
      when: master_node|bool

      (1) json - the JSON text. Default: GV_SQL_RESULT_JSON environment variable.

      (2) key - dot separated keys, [N] for list items. A leading . is ok.
            ID  user.name  items[0]  [0].NAME  .data.users[1].email

      (3) refname: variable name you want Ansible to reference results with.
            default: jsonvalue

      (4) ignore_errors - Optional. Default: False.
            If False and the key isn't found, the module will fail the play.

    Example:

        json = [{"ID":1,"NAME":"alpha"},{"ID":2,"NAME":"beta"}]
        key = [1].NAME

        returns jsonvalue: { value: beta, type: string }
'''

default_refname = "jsonvalue"


def main():
    """
    extract a value from a json string
    """

    module = AnsibleModule(
        argument_spec=dict(
            key=dict(required=True),
            json=dict(required=False),
            refname=dict(required=False),
            ignore_errors=dict(required=False),
            debugging=dict(required=False)
        ),
        supports_check_mode=True,
    )

    v_key = module.params.get('key')
    v_json = module.params.get('json')
    v_refname = module.params.get('refname')
    v_ignore_err = module.params.get('ignore_errors')
    set_debugging(module.params.get('debugging'))

    if v_ignore_err is None:
        vignore = config.default_ignore
    else:
        vignore = config.is_true(v_ignore_err)

    refname = v_refname or default_refname
    # This has to be here, cannot reference before setting refname
    ansible_facts = {refname: {}}

    try:
        result = json_value(v_key, v_json)
    except OrapacError as e:
        ansible_facts[refname] = {'value': None, 'type': None}
        if vignore:
            module.exit_json(msg=str(e), ansible_facts=ansible_facts, changed=False)
        module.fail_json(msg=str(e), ansible_facts=ansible_facts, rc=e.rc, changed=False)
        return

    ansible_facts[refname] = {'value': result.value, 'type': result.type}
    vmsg = "jsonvalue finished successfully. Returned item: {}".format(result.text)
    debugg(vmsg)
    module.exit_json(msg=vmsg, ansible_facts=ansible_facts, changed=False)


# code to execute if this program is called directly
if __name__ == "__main__":
    main()
