#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Module for Ansible to bring /etc/oratab in line with the instances running
# on the host: running instances flagged Y, stopped ones N, running ones
# that are missing get added. A backup is made before every change.
#
# Run it as the oracle user ( become_user: oracle ).

from ansible.module_utils.basic import AnsibleModule

from orapac import config
from orapac import oratab
from orapac.dbug import debugg, set_debugging
from orapac.errors import OrapacError

ANSIBLE_METADATA = {'status': ['stableinterface'],
                    'supported_by': 'Cru DBA team',
                    'version': '0.1'}

DOCUMENTATION = '''
---
module: updoratab
short_description: Update /etc/oratab flags from the running instances.

notes: Supports check mode ( nothing is written, changes are reported ).
requirements: [ python3 ]
author: "DBA Oracle module Team"
'''

EXAMPLES = '''

    - name: update oratab
      updoratab:
        oratab: /etc/oratab                 (1)
        cleanup_nonrunning: False           (2)
        refname: oratab_update
        ignore_errors: False
        debugging: False
      become_user: oracle

      (1) oratab - default /etc/oratab ( GV_ORATAB_FILE )

      (2) cleanup_nonrunning - True: remove the entries of stopped instances

    returns:
        oratab_update:
            changes: [ "orcl: status changed from N to Y" ]
            backup: /etc/oratab.bak.1700000000
'''

default_refname = "oratab_update"


def main():
    """Reconcile oratab, report what changed"""

    module = AnsibleModule(
        argument_spec=dict(
            oratab=dict(required=False),
            cleanup_nonrunning=dict(required=False),
            refname=dict(required=False),
            ignore_errors=dict(required=False),
            debugging=dict(required=False)
        ),
        supports_check_mode=True,
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
        oratab.validate_environment(module.params.get('oratab'))
        with oratab.OratabLock():
            result = oratab.update_oratab(path=module.params.get('oratab'),
                                          dry_run=module.check_mode,
                                          cleanup=config.is_true(module.params.get('cleanup_nonrunning')))
    except OrapacError as e:
        ansible_facts[refname] = {'changes': [], 'backup': None}
        if vignore:
            module.exit_json(msg=str(e), ansible_facts=ansible_facts, changed=False)
        module.fail_json(msg=str(e), ansible_facts=ansible_facts, rc=e.rc, changed=False)
        return

    ansible_facts[refname] = {'changes': result.changes, 'backup': result.backup}
    if result.changed:
        vmsg = "updoratab made {} change(s)".format(len(result.changes))
    else:
        vmsg = "updoratab: no changes needed"
    debugg(vmsg)
    module.exit_json(msg=vmsg, ansible_facts=ansible_facts, changed=result.changed)


# code to execute if this program is called directly
if __name__ == "__main__":
    main()
