#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Module for Ansible to relocate a RAC One Node database to another node
# of the cluster with srvctl, then wait for it to come up there.
#
#  Notes: run this on one node only ( when: master_node ) as the oracle user.
#  The module never prompts; the relocation goes ahead once the checks pass.

from ansible.module_utils.basic import AnsibleModule

from orapac import config
from orapac.dbug import debugg, set_debugging
from orapac.errors import OrapacError
from orapac.racone import RacOneNodeRelocator

ANSIBLE_METADATA = {'status': ['stableinterface'],
                    'supported_by': 'Cru DBA team',
                    'version': '0.1'}

DOCUMENTATION = '''
---
module: raconereloc
short_description: Relocate a RAC One Node database to another cluster node.

notes: Supports check mode ( checks run, srvctl relocate is not executed ).
requirements: [ python3, Grid Infrastructure ( crsctl, srvctl ) ]
author: "DBA Oracle module Team"
'''

EXAMPLES = '''

    - name: move the database off node 1 for patching
      raconereloc:
        db: tstdb
        target_node: tlorad02              (1)
        allow_downtime: False              (2)
        max_retries: 30                    (3)
        retry_interval: 10
        refname: reloc
        ignore_errors: False
        debugging: False
      become_user: "{{ remote_user }}"
      when: master_node

      (1) target_node - optional. Default: the first candidate server that
          isn't the current node ( srvctl config database -d tstdb ).

      (2) allow_downtime - True adds -f to srvctl relocate database.

      (3) max_retries x retry_interval (seconds) is how long to wait for the
          database to show up on the target node. Defaults 30 x 10.

    returns:
        reloc:
            database: tstdb
            from_node: tlorad01
            to_node: tlorad02
'''

default_refname = "raconereloc"


def main():
    """Relocate the database, wait for it on the target node"""

    module = AnsibleModule(
        argument_spec=dict(
            db=dict(required=True),
            target_node=dict(required=False),
            allow_downtime=dict(required=False),
            max_retries=dict(required=False),
            retry_interval=dict(required=False),
            refname=dict(required=False),
            ignore_errors=dict(required=False),
            debugging=dict(required=False)
        ),
        supports_check_mode=True,
    )

    vdb = module.params.get('db')
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
        relocator = RacOneNodeRelocator(vdb,
                                        target_node=module.params.get('target_node'),
                                        allow_downtime=config.is_true(module.params.get('allow_downtime')),
                                        force=True,
                                        dry_run=module.check_mode,
                                        max_retries=module.params.get('max_retries'),
                                        retry_interval=module.params.get('retry_interval'))
        from_node, to_node = relocator.run()
    except OrapacError as e:
        ansible_facts[refname] = {'database': vdb, 'from_node': None, 'to_node': None}
        if vignore:
            module.exit_json(msg=str(e), ansible_facts=ansible_facts, changed=False)
        module.fail_json(msg=str(e), ansible_facts=ansible_facts, rc=e.rc, changed=False)
        return

    ansible_facts[refname] = {'database': vdb, 'from_node': from_node, 'to_node': to_node}
    vmsg = "raconereloc: {} relocated from {} to {}".format(vdb, from_node, to_node)
    if module.check_mode:
        vmsg = "raconereloc: {} would be relocated from {} to {}".format(vdb, from_node, to_node)
    debugg(vmsg)
    module.exit_json(msg=vmsg, ansible_facts=ansible_facts, changed=not module.check_mode)


# code to execute if this program is called directly
if __name__ == "__main__":
    main()
